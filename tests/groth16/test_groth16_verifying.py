"""
Groth16 verifier tests with proofs built from a known trapdoor.

Covers:
- valid proof accepted, tampered public input / C rejected
- 256-byte proof codec (infinity, off-curve, out-of-field, length)
- verifying key JSON round trip and validation
- chain verification with the real pairing backend
"""

import json
from dataclasses import replace

import pytest

from zkpor.groth16.field import FIELD_MODULUS, G1, G2, ec_add, ec_mul, is_g2_point
from zkpor.groth16.verifying import (
    PROOF_SIZE,
    Proof,
    VerifyingKey,
    groth16_verify,
    load_verifying_key,
    proof_from_bytes,
    proof_to_bytes,
    verify,
)
from zkpor.solvency.chain import ChainVerifier
from zkpor.solvency.errors import ProofRejectedError

PUBLIC_INPUT = bytes.fromhex("1f" * 32)


class TestGroth16Verify:
    def test_valid_proof(self, groth16_prover):
        proof_bytes = groth16_prover.prove_bytes(PUBLIC_INPUT)
        assert groth16_verify(proof_bytes, groth16_prover.vk, PUBLIC_INPUT) is True

    def test_wrong_public_input(self, groth16_prover):
        proof_bytes = groth16_prover.prove_bytes(PUBLIC_INPUT)
        other = PUBLIC_INPUT[:-1] + b"\x20"
        assert groth16_verify(proof_bytes, groth16_prover.vk, other) is False

    def test_tampered_c(self, groth16_prover):
        proof = groth16_prover.prove(PUBLIC_INPUT)
        forged = Proof(proof.a, proof.b, ec_add(proof.c, G1))
        assert verify(forged, groth16_prover.vk, [PUBLIC_INPUT]) is False

    def test_public_input_count(self, groth16_prover):
        proof = groth16_prover.prove(PUBLIC_INPUT)
        with pytest.raises(ValueError):
            verify(proof, groth16_prover.vk, [PUBLIC_INPUT, PUBLIC_INPUT])


class TestProofCodec:
    def test_round_trip(self, groth16_prover):
        proof = groth16_prover.prove(PUBLIC_INPUT)
        raw = proof_to_bytes(proof)
        assert len(raw) == PROOF_SIZE
        decoded = proof_from_bytes(raw)
        assert (decoded.a, decoded.b, decoded.c) == (proof.a, proof.b, proof.c)

    def test_infinity(self):
        raw = proof_to_bytes(Proof(None, G2, G1))
        assert raw[:64] == b"\x00" * 64
        assert proof_from_bytes(raw).a is None

    @pytest.mark.parametrize("length", [0, PROOF_SIZE - 1, PROOF_SIZE + 1])
    def test_wrong_length(self, length):
        with pytest.raises(ValueError):
            proof_from_bytes(b"\x01" * length)

    def test_off_curve_g1(self, groth16_prover):
        raw = bytearray(groth16_prover.prove_bytes(PUBLIC_INPUT))
        raw[63] ^= 0x01  # A.y
        with pytest.raises(ValueError):
            proof_from_bytes(bytes(raw))

    def test_off_curve_g2(self, groth16_prover):
        raw = bytearray(groth16_prover.prove_bytes(PUBLIC_INPUT))
        raw[64 + 127] ^= 0x01  # B.y.c1
        with pytest.raises(ValueError):
            proof_from_bytes(bytes(raw))

    def test_coordinate_out_of_field(self, groth16_prover):
        raw = bytearray(groth16_prover.prove_bytes(PUBLIC_INPUT))
        raw[192:224] = FIELD_MODULUS.to_bytes(32, "big")  # C.x
        with pytest.raises(ValueError):
            proof_from_bytes(bytes(raw))

    def test_rejected_through_zk_verify(self, groth16_prover):
        with pytest.raises(ValueError):
            groth16_verify(b"\x00" * 10, groth16_prover.vk, PUBLIC_INPUT)


class TestVerifyingKey:
    def test_dict_round_trip(self, groth16_prover):
        data = groth16_prover.vk.to_dict()
        assert VerifyingKey.from_dict(data).to_dict() == data
        assert groth16_prover.vk.num_public_inputs == 1

    def test_load(self, tmp_path, groth16_prover):
        path = tmp_path / "zkpor.vk.json"
        path.write_text(json.dumps(groth16_prover.vk.to_dict()))
        vk = load_verifying_key(str(path))
        assert vk.ic == groth16_prover.vk.ic
        assert vk.delta_g2 == groth16_prover.vk.delta_g2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "zkpor.vk.json"
        path.write_text("{")
        with pytest.raises(ValueError):
            load_verifying_key(str(path))

    def test_missing_field(self, groth16_prover):
        data = groth16_prover.vk.to_dict()
        del data["gamma_g2"]
        with pytest.raises(ValueError):
            VerifyingKey.from_dict(data)

    def test_off_curve_point(self, groth16_prover):
        data = groth16_prover.vk.to_dict()
        data["alpha_g1"] = [data["alpha_g1"][0], str(int(data["alpha_g1"][1]) + 1)]
        with pytest.raises(ValueError):
            VerifyingKey.from_dict(data)

    def test_g2_subgroup(self):
        assert is_g2_point(ec_mul(G2, 12345))
        assert is_g2_point(None)


class TestChainWithPairing:
    def test_two_batch_chain(self, groth16_prover, chain_builder, hasher, empty_root, empty_cex):
        records = chain_builder(2, prover=groth16_prover.prove_bytes)
        verifier = ChainVerifier(groth16_prover.vk, empty_cex, hasher=hasher,
                                 empty_tree_root=empty_root)
        result = verifier.verify(records)
        assert result.batches_verified == 2
        assert result.final_tree_root == records[1].tree_roots[1]

    def test_swapped_proofs_rejected(self, groth16_prover, chain_builder, hasher,
                                     empty_root, empty_cex):
        records = chain_builder(2, prover=groth16_prover.prove_bytes)
        records[0], records[1] = (
            replace(records[0], proof_bytes=records[1].proof_bytes),
            replace(records[1], proof_bytes=records[0].proof_bytes),
        )
        verifier = ChainVerifier(groth16_prover.vk, empty_cex, hasher=hasher,
                                 empty_tree_root=empty_root)
        with pytest.raises(ProofRejectedError) as exc:
            verifier.verify(records)
        assert exc.value.batch_number == 0

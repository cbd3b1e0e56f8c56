"""
Configuration loading tests (chain config + user config).
"""

import base64
import json

import pytest

from zkpor.solvency.assets import AccountAsset, AssetInfo, DEFAULT_ASSET_COUNT
from zkpor.solvency.chain import EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28
from zkpor.solvency.config import (
    chain_config_from_dict,
    load_chain_config,
    load_user_config,
    user_config_from_dict,
)
from zkpor.solvency.errors import DecodeError
from zkpor.solvency.inclusion import ACCOUNT_TREE_DEPTH

DIGEST = bytes(range(32))

CHAIN_CONFIG = {
    "ProofTable": "proof.csv",
    "ZkKeyName": "zkpor.vk.json",
    "CexAssetsInfo": [
        {"Index": 0, "Symbol": "BTC", "TotalEquity": 10, "TotalDebt": 2, "BasePrice": 30000},
    ],
}


def _user_config(**overrides):
    data = {
        "AccountIndex": 9,
        "AccountIdHash": DIGEST.hex(),
        "TotalEquity": 100,
        "TotalDebt": 5,
        "Root": "0x" + DIGEST.hex(),
        "Proof": [base64.b64encode(DIGEST).decode()] * ACCOUNT_TREE_DEPTH,
        "Assets": [{"Index": 0, "Equity": 100, "Debt": 5}],
    }
    data.update(overrides)
    return data


class TestChainConfig:
    def test_defaults(self):
        config = chain_config_from_dict(CHAIN_CONFIG, "/data")
        assert config.proof_table == "/data/proof.csv"
        assert config.zk_key_name == "/data/zkpor.vk.json"
        assert config.cex_assets_info == (AssetInfo(0, "BTC", 10, 2, 30000),)
        assert config.account_tree_depth == ACCOUNT_TREE_DEPTH
        assert config.empty_account_tree_root == EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28
        assert config.empty_cex_commitment is None
        assert config.max_workers == 1
        assert config.use_process_pool is False
        assert config.commitment_scheme is None

    def test_absolute_paths_kept(self):
        data = dict(CHAIN_CONFIG, ProofTable="/abs/proof.csv")
        assert chain_config_from_dict(data, "/data").proof_table == "/abs/proof.csv"

    def test_overrides(self):
        data = dict(
            CHAIN_CONFIG,
            EmptyAccountTreeRoot=DIGEST.hex(),
            EmptyCexAssetListCommitment="0x" + DIGEST.hex(),
            MaxWorkers=4,
        )
        config = chain_config_from_dict(data)
        assert config.empty_account_tree_root == DIGEST
        assert config.empty_cex_commitment == DIGEST
        assert config.max_workers == 4

    @pytest.mark.parametrize("key", ["ProofTable", "ZkKeyName", "CexAssetsInfo"])
    def test_missing_key(self, key):
        data = {k: v for k, v in CHAIN_CONFIG.items() if k != key}
        with pytest.raises(DecodeError):
            chain_config_from_dict(data)

    @pytest.mark.parametrize("workers", [0, -2, "4", True])
    def test_invalid_worker_count(self, workers):
        with pytest.raises(DecodeError):
            chain_config_from_dict(dict(CHAIN_CONFIG, MaxWorkers=workers))

    def test_load_relative_to_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(CHAIN_CONFIG))
        config = load_chain_config(str(path))
        assert config.proof_table == str(tmp_path / "proof.csv")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(DecodeError):
            load_chain_config(str(path))

    def test_depth_without_empty_root(self):
        # 내장 빈 트리 루트는 깊이 28 전용이다
        with pytest.raises(DecodeError) as exc:
            chain_config_from_dict(dict(CHAIN_CONFIG, AccountTreeDepth=4))
        assert "EmptyAccountTreeRoot" in str(exc.value)

    def test_depth_with_empty_root(self):
        data = dict(CHAIN_CONFIG, AccountTreeDepth=4, EmptyAccountTreeRoot=DIGEST.hex())
        config = chain_config_from_dict(data)
        assert config.account_tree_depth == 4
        assert config.empty_account_tree_root == DIGEST

    def test_backend_options(self):
        data = dict(CHAIN_CONFIG, UseProcessPool=True,
                    CommitmentScheme="mypkg.poseidon:PoseidonScheme")
        config = chain_config_from_dict(data)
        assert config.use_process_pool is True
        assert config.commitment_scheme == "mypkg.poseidon:PoseidonScheme"

    @pytest.mark.parametrize("key, value", [
        ("UseProcessPool", "yes"),
        ("UseProcessPool", 1),
        ("CommitmentScheme", 42),
        ("CommitmentScheme", ["mypkg:Scheme"]),
    ])
    def test_invalid_backend_options(self, key, value):
        with pytest.raises(DecodeError):
            chain_config_from_dict(dict(CHAIN_CONFIG, **{key: value}))

class TestUserConfig:
    def test_decode(self):
        config = user_config_from_dict(_user_config())
        proof = config.proof
        assert proof.account_index == 9
        assert proof.account_id_hash == DIGEST
        assert proof.root == DIGEST
        assert proof.siblings == (DIGEST,) * ACCOUNT_TREE_DEPTH
        assert proof.assets == (AccountAsset(0, 100, 5),)
        assert config.asset_count == DEFAULT_ASSET_COUNT
        assert config.account_tree_depth == ACCOUNT_TREE_DEPTH

    def test_short_sibling_is_invalid_proof(self):
        proof = [base64.b64encode(DIGEST).decode()] * (ACCOUNT_TREE_DEPTH - 1)
        proof.append(base64.b64encode(DIGEST[:31]).decode())
        with pytest.raises(DecodeError) as exc:
            user_config_from_dict(_user_config(Proof=proof))
        assert "invalid proof" in str(exc.value)

    def test_account_index_out_of_tree(self):
        with pytest.raises(DecodeError):
            user_config_from_dict(_user_config(AccountIndex=1 << ACCOUNT_TREE_DEPTH))

    def test_custom_depth_and_asset_count(self):
        config = user_config_from_dict(_user_config(AccountTreeDepth=4, AssetCount=8, AccountIndex=15))
        assert config.account_tree_depth == 4
        assert config.asset_count == 8

    def test_missing_field(self):
        data = _user_config()
        del data["Root"]
        with pytest.raises(DecodeError):
            user_config_from_dict(data)

    def test_bad_root(self):
        with pytest.raises(DecodeError):
            user_config_from_dict(_user_config(Root="abcd"))

    def test_load(self, tmp_path):
        path = tmp_path / "user_config.json"
        path.write_text(json.dumps(_user_config()))
        assert load_user_config(str(path)).proof.total_equity == 100

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "user_config.json"
        path.write_text("[]")
        with pytest.raises(DecodeError):
            load_user_config(str(path))

    @pytest.mark.parametrize("element", [123, None, {"digest": "AA=="}])
    def test_non_string_proof_element(self, element):
        proof = [base64.b64encode(DIGEST).decode()] * (ACCOUNT_TREE_DEPTH - 1) + [element]
        with pytest.raises(DecodeError) as exc:
            user_config_from_dict(_user_config(Proof=proof))
        assert f"Proof[{ACCOUNT_TREE_DEPTH - 1}]" in str(exc.value)

    def test_commitment_scheme(self):
        config = user_config_from_dict(_user_config(CommitmentScheme="mypkg.poseidon:PoseidonScheme"))
        assert config.commitment_scheme == "mypkg.poseidon:PoseidonScheme"
        assert user_config_from_dict(_user_config()).commitment_scheme is None

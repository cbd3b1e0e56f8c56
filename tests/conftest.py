import sys
import os
import threading
import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from zkpor.groth16.field import FR, G1, G2, ec_mul, to_field
from zkpor.groth16.verifying import Proof, VerifyingKey, proof_to_bytes
from zkpor.solvency.assets import AssetInfo, AccountAsset
from zkpor.solvency.chain import compute_public_input
from zkpor.solvency.hashing import FieldSha256Hasher
from zkpor.solvency.ledger import empty_asset_commitment, expected_asset_commitment
from zkpor.solvency.records import BatchRecord


# ── 테스트 상수 ──
TEST_ASSET_INFOS = [
    AssetInfo(index=0, symbol="BTC", total_equity=5_000, total_debt=1_200, base_price=30_000),
    AssetInfo(index=1, symbol="ETH", total_equity=80_000, total_debt=0, base_price=2_000),
    AssetInfo(index=2, symbol="USDT", total_equity=10**12, total_debt=10**12, base_price=1),
]

EMPTY_LEAF = b"\x00" * 32


def make_chain(hasher, num_batches, empty_root, empty_cex, final_cex, prover=None):
    """올바르게 연결된 합성 배치 체인을 만든다.

    마지막 배치의 cex_commitments[1]은 final_cex이고, 중간 상태는 결정론적
    더미 다이제스트이다. prover가 주어지면 공개 입력으로 증명 바이트를 만든다.
    """
    records = []
    prev_root, prev_cex = empty_root, empty_cex
    for i in range(num_batches):
        new_root = hasher.hash(b"tree-root", i)
        new_cex = final_cex if i == num_batches - 1 else hasher.hash(b"cex-commitment", i)
        roots = (prev_root, new_root)
        cexs = (prev_cex, new_cex)
        public_input = compute_public_input(hasher, roots, cexs)
        proof_bytes = prover(public_input) if prover else f"proof-{i}".encode()
        records.append(BatchRecord(i, proof_bytes, cexs, roots, public_input))
        prev_root, prev_cex = new_root, new_cex
    return records


class RecordingZkVerify:
    """호출을 기록하는 ZkVerify 테스트 더블.

    rejected에 포함된 proof_bytes는 거부하고, 나머지는 통과시킨다.
    """

    def __init__(self, rejected=(), error=None):
        self.calls = []
        self.rejected = set(rejected)
        self.error = error
        self._lock = threading.Lock()

    def __call__(self, proof_bytes, verifying_key, public_input):
        with self._lock:
            self.calls.append(proof_bytes)
        if self.error is not None:
            raise self.error
        return proof_bytes not in self.rejected

    def called_batches(self):
        return sorted(int(p.decode().split("-")[1]) for p in self.calls)


class SparseMerkleTree:
    """테스트용 희소 Merkle 트리 (빈 리프 = 0x00 * 32).

    리프 i의 부모는 i >> 1 이고, 짝수 인덱스가 왼쪽 자식이다.
    """

    def __init__(self, hasher, depth, leaves):
        self.depth = depth
        self.zero = [EMPTY_LEAF]
        for d in range(depth):
            self.zero.append(hasher.hash(self.zero[d], self.zero[d]))
        self.levels = [dict(leaves)]
        for d in range(depth):
            current = self.levels[d]
            parents = {}
            for idx in {i >> 1 for i in current}:
                left = current.get(2 * idx, self.zero[d])
                right = current.get(2 * idx + 1, self.zero[d])
                parents[idx] = hasher.hash(left, right)
            self.levels.append(parents)

    @property
    def root(self):
        return self.levels[self.depth].get(0, self.zero[self.depth])

    def proof(self, index):
        return [self.levels[d].get((index >> d) ^ 1, self.zero[d]) for d in range(self.depth)]


@pytest.fixture
def hasher():
    return FieldSha256Hasher()


@pytest.fixture
def asset_infos():
    return list(TEST_ASSET_INFOS)


@pytest.fixture
def empty_root(hasher):
    """합성 체인의 빈 계정 트리 루트 (깊이 4 빈 트리)."""
    return SparseMerkleTree(hasher, 4, {}).root


@pytest.fixture
def empty_cex(hasher, asset_infos):
    return empty_asset_commitment(hasher, asset_infos)


@pytest.fixture
def final_cex(hasher, asset_infos):
    return expected_asset_commitment(hasher, asset_infos)


@pytest.fixture
def chain3(hasher, empty_root, empty_cex, final_cex):
    """배치 0, 1, 2로 이루어진 올바른 체인."""
    return make_chain(hasher, 3, empty_root, empty_cex, final_cex)


@pytest.fixture
def zk_stub():
    return RecordingZkVerify()


@pytest.fixture
def user_assets():
    return [AccountAsset(index=0, equity=12, debt=0), AccountAsset(index=2, equity=400, debt=50)]


@pytest.fixture
def chain_builder(hasher, empty_root, empty_cex, final_cex):
    """num_batches개 배치의 올바른 체인을 만드는 팩토리."""
    def build(num_batches, prover=None):
        return make_chain(hasher, num_batches, empty_root, empty_cex, final_cex, prover)
    return build


@pytest.fixture
def stub_factory():
    return RecordingZkVerify


@pytest.fixture
def tree_factory(hasher):
    def build(depth, leaves):
        return SparseMerkleTree(hasher, depth, leaves)
    return build


# ─────────────────────────────────────────────────────────────────────
# Groth16 (알려진 trapdoor로 만든 유효한 증명)
# ─────────────────────────────────────────────────────────────────────

TOXIC_ALPHA = 3926
TOXIC_BETA = 3604
TOXIC_GAMMA = 2971
TOXIC_DELTA = 1357
IC_SCALARS = (4106, 4565)

PROVER_A = 7919
PROVER_B = 104729


class TrapdoorProver:
    """trapdoor(α, β, γ, δ)를 알고 있으므로 임의의 공개 입력에 대해
    검증 방정식을 만족하는 증명을 직접 만든다.

    A = a·G1, B = b·G2
    C = (a·b - α·β - vk_x·γ) / δ · G1,  vk_x = u₀ + x·u₁
    """

    def __init__(self):
        self.alpha = FR(TOXIC_ALPHA)
        self.beta = FR(TOXIC_BETA)
        self.gamma = FR(TOXIC_GAMMA)
        self.delta = FR(TOXIC_DELTA)
        self.ic = [FR(u) for u in IC_SCALARS]
        self.vk = VerifyingKey(
            ec_mul(G1, self.alpha),
            ec_mul(G2, self.beta),
            ec_mul(G2, self.gamma),
            ec_mul(G2, self.delta),
            [ec_mul(G1, u) for u in self.ic],
        )

    def prove(self, public_input):
        x = to_field(public_input)
        a, b = FR(PROVER_A), FR(PROVER_B)
        vk_x = self.ic[0] + x * self.ic[1]
        c = (a * b - self.alpha * self.beta - vk_x * self.gamma) / self.delta
        return Proof(ec_mul(G1, a), ec_mul(G2, b), ec_mul(G1, c))

    def prove_bytes(self, public_input):
        return proof_to_bytes(self.prove(public_input))


@pytest.fixture(scope="session")
def groth16_prover():
    return TrapdoorProver()

"""
배치 증명 체인 검증
===================

순서가 있는 배치 증명 목록을 재생하여, 거래소의 계정 트리와 자산 목록이
배치마다 끊김 없이 이어졌는지 확인한다.

**검증 과정** (배치 i마다):
  a. 배치 번호 == i                                    → NonContiguousBatchError
  b. tree_roots[0], cex_commitments[0]이 직전 상태와 일치 → ContinuityError
  c. Hash(root₀, root₁, cex₀, cex₁) == public_input     → PublicInputMismatchError
  d. ZkVerify(proof, vk, public_input)                  → ProofRejectedError
  e. 상태 갱신: prev = (root₁, cex₁)

b, c는 값싼 순차 검사이고 d는 비싼 페어링 검사이다. 먼저 모든 배치에 대해
b, c를 순차적으로 수행하고(첫 실패에서 중단), 통과한 배치에 대해서만 d를
수행한다. d는 배치끼리 독립이므로 작업자 풀에서 병렬로 돌릴 수 있다.
py_ecc 페어링은 순수 파이썬이라 스레드 풀에서는 GIL 때문에 실제로 병렬 실행되지
않는다. CPU 병렬성이 필요하면 프로세스 풀(use_process_pool=True)을 쓴다. 이때
zk_verify와 검증 키는 pickle 가능해야 한다 (모듈 수준 함수, VerifyingKey).
어느 경우든 보고되는 실패는 가장 낮은 번호의 실패 배치이며, 공개 입력이
맞지 않는 배치와 그 이후 배치에 대해서는 ZkVerify를 호출하지 않는다.

사용 예시:
    >>> verifier = ChainVerifier(vk, empty_cex_commitment=empty_comm)
    >>> result = verifier.verify(records)
    >>> result.final_tree_root.hex()
"""

import logging
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from zkpor.groth16.verifying import groth16_verify
from zkpor.solvency.errors import (
    ContinuityError,
    DecodeError,
    NonContiguousBatchError,
    ProofRejectedError,
    PublicInputMismatchError,
)
from zkpor.solvency.hashing import FieldSha256Hasher
from zkpor.solvency.records import index_batches

logger = logging.getLogger(__name__)

# 깊이 28 빈 계정 트리의 루트 (Poseidon 백엔드 기준, 증명 생성 측과 동일해야 함)
EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28 = bytes.fromhex(
    "0e85b74bfd43747cb5e18ecb067727243f2e919a91ef69d86b5a27ed74bea7c2"
)


@dataclass(frozen=True)
class ChainState:
    """순차 검사 패스가 단독으로 소유하는 체인 누적 상태."""

    prev_cex_commitment: bytes
    prev_tree_root: bytes
    next_expected_batch: int = 0

    def advance(self, record):
        return ChainState(
            prev_cex_commitment=record.cex_commitments[1],
            prev_tree_root=record.tree_roots[1],
            next_expected_batch=self.next_expected_batch + 1,
        )


@dataclass(frozen=True)
class ChainResult:
    final_tree_root: bytes
    final_cex_commitment: bytes
    batches_verified: int


def compute_public_input(hasher, tree_roots, cex_commitments):
    """배치 공개 입력 = Hash(root_prev, root_new, cex_prev, cex_new)."""
    return hasher.hash(tree_roots[0], tree_roots[1], cex_commitments[0], cex_commitments[1])


def run_zk_verify(zk_verify, verifying_key, proof_bytes, public_input):
    """ZkVerify 호출 하나를 (ok, reason)으로 바꾼다. 작업자 풀에 그대로 제출된다.

    증명 시스템이 던지는 예외도 증명 거부로 취급한다.
    """
    try:
        ok = zk_verify(proof_bytes, verifying_key, public_input)
    except Exception as e:
        return False, str(e)
    return bool(ok), None


def _rejection(batch_number, ok, reason):
    if ok:
        return None
    return ProofRejectedError(batch_number, reason=reason)


def check_batch(hasher, state, record):
    """배치 하나의 순서/연속성/공개 입력을 검사하고 다음 상태를 반환한다.

    순수 함수이며 ZkVerify는 호출하지 않는다.

    Raises:
        NonContiguousBatchError, ContinuityError, PublicInputMismatchError
    """
    i = state.next_expected_batch
    if record.batch_number != i:
        raise NonContiguousBatchError(i, found=record.batch_number)

    if record.tree_roots[0] != state.prev_tree_root or \
            record.cex_commitments[0] != state.prev_cex_commitment:
        raise ContinuityError(i)

    expected = compute_public_input(hasher, record.tree_roots, record.cex_commitments)
    logger.debug("batch %d expected public input %s", i, expected.hex())
    if expected != record.public_input:
        raise PublicInputMismatchError(i, expected, record.public_input)

    return state.advance(record)


class ChainVerifier:
    """배치 증명 체인 검증기.

    속성:
        verifying_key: 모든 배치가 공유하는 읽기 전용 검증 키
        zk_verify: (proof_bytes, verifying_key, public_input) -> bool
        hasher: CommitmentScheme (공개 입력 재계산용)
        empty_tree_root: 빈 계정 트리 루트 (배치 0의 시작 상태)
        empty_cex_commitment: 모든 잔고가 0인 자산 목록의 커밋먼트
        max_workers: ZkVerify 병렬 작업자 수 (1이면 순차)
        use_process_pool: True이면 스레드 대신 프로세스 풀에서 ZkVerify 실행
    """

    def __init__(self, verifying_key, empty_cex_commitment, zk_verify=groth16_verify,
                 hasher=None, empty_tree_root=EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28, max_workers=1,
                 use_process_pool=False):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1: {max_workers}")
        self.verifying_key = verifying_key
        self.zk_verify = zk_verify
        self.hasher = hasher if hasher is not None else FieldSha256Hasher()
        self.empty_tree_root = empty_tree_root
        self.empty_cex_commitment = empty_cex_commitment
        self.max_workers = max_workers
        self.use_process_pool = use_process_pool

    def initial_state(self):
        return ChainState(self.empty_cex_commitment, self.empty_tree_root, 0)

    def verify(self, records):
        """배치 체인 전체를 검증한다.

        Args:
            records: BatchRecord 컬렉션 (순서 무관)

        Returns:
            ChainResult: 마지막 배치의 tree_roots[1], cex_commitments[1]

        Raises:
            DecodeError: 레코드가 없을 때
            SequenceError: 배치 번호 누락/중복
            ChainVerificationError: 가장 낮은 번호의 실패 배치
        """
        batches = index_batches(records)
        if not batches:
            raise DecodeError("no batch records to verify")

        checked, structural_error = self._structural_pass(batches)

        if self.max_workers > 1 and len(checked) > 1:
            zk_error = self._zk_pass_concurrent(checked)
        else:
            zk_error = self._zk_pass_sequential(checked)

        # checked의 배치 번호는 모두 structural_error의 배치 번호보다 작다
        error = zk_error or structural_error
        if error is not None:
            logger.warning("chain verification failed at batch %d: %s", error.batch_number, error)
            raise error

        last = batches[-1]
        logger.info("account merkle tree root is %s", last.tree_roots[1].hex())
        return ChainResult(
            final_tree_root=last.tree_roots[1],
            final_cex_commitment=last.cex_commitments[1],
            batches_verified=len(batches),
        )

    def _structural_pass(self, batches):
        state = self.initial_state()
        checked = []
        for record in batches:
            try:
                state = check_batch(self.hasher, state, record)
            except (NonContiguousBatchError, ContinuityError, PublicInputMismatchError) as e:
                return checked, e
            checked.append(record)
        return checked, None

    def _zk_check(self, record):
        """배치 하나의 영지식 검사. 실패 시 ProofRejectedError를 반환한다."""
        ok, reason = run_zk_verify(
            self.zk_verify, self.verifying_key, record.proof_bytes, record.public_input
        )
        return _rejection(record.batch_number, ok, reason)

    def _zk_pass_sequential(self, checked):
        for record in checked:
            error = self._zk_check(record)
            if error is not None:
                return error
            logger.info("proof verify success %d", record.batch_number)
        return None

    def _zk_pass_concurrent(self, checked):
        failures = {}
        pool = ProcessPoolExecutor if self.use_process_pool else ThreadPoolExecutor
        with pool(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(run_zk_verify, self.zk_verify, self.verifying_key,
                                record.proof_bytes, record.public_input): record.batch_number
                for record in checked
            }
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                batch_number = futures[future]
                error = _rejection(batch_number, *future.result())
                if error is None:
                    logger.info("proof verify success %d", batch_number)
                    continue
                failures[batch_number] = error
                # 아직 시작하지 않은 이후 배치 작업은 취소한다
                for other, n in futures.items():
                    if n > batch_number:
                        other.cancel()
        if failures:
            return failures[min(failures)]
        return None

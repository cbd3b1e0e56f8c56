"""
체인 모드 전체 실행
===================

1. 거래소 자산 정보 검증 (equity >= debt), 체인 처리 전에 수행
2. 빈 원장 커밋먼트 결정 (설정값 또는 0 잔고 자산 목록의 커밋먼트)
3. 배치 체인 검증 (ChainVerifier)
4. 최종 자산 커밋먼트 비교

성공하면 SolvencyReport를 반환하고, 실패하면 첫 번째 위반을 예외로 올린다.
"""

import logging
from dataclasses import dataclass

from zkpor.groth16.verifying import groth16_verify, load_verifying_key
from zkpor.solvency.assets import validate_asset_infos
from zkpor.solvency.chain import EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28, ChainVerifier
from zkpor.solvency.errors import DecodeError
from zkpor.solvency.hashing import load_commitment_scheme
from zkpor.solvency.ledger import check_final_commitment, empty_asset_commitment
from zkpor.solvency.records import load_proof_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolvencyReport:
    final_tree_root: bytes
    final_cex_commitment: bytes
    expected_cex_commitment: bytes
    batches_verified: int


def check_backend_roots(hasher, empty_tree_root):
    """내장 빈 트리 루트(Poseidon)는 prover_compatible 백엔드로만 재현된다.

    그 외 백엔드로는 모든 배치 0이 공개 입력 불일치로 실패하므로 미리 거부한다.
    """
    if empty_tree_root == EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28 and not hasher.prover_compatible:
        raise DecodeError(
            f"{type(hasher).__name__} does not reproduce the prover's Poseidon digests; "
            "configure CommitmentScheme or EmptyAccountTreeRoot"
        )


def verify_chain_records(records, asset_infos, verifying_key, hasher=None,
                         zk_verify=groth16_verify,
                         empty_tree_root=EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28,
                         empty_cex_commitment=None, max_workers=1, use_process_pool=False):
    """디코딩된 배치 레코드와 자산 정보로 체인 모드 검증을 수행한다.

    Raises:
        DecodeError: 증명 생성 측과 호환되지 않는 해시 백엔드를 내장 빈 트리 루트와 함께 쓸 때
        AssetInvariantError: 체인 처리 전에 자산 불변식 위반이 발견될 때
        SequenceError, ChainVerificationError: 체인 검증 실패
        FinalCommitmentMismatchError: 최종 자산 커밋먼트 불일치
    """
    hasher = hasher if hasher is not None else load_commitment_scheme()
    check_backend_roots(hasher, empty_tree_root)
    validate_asset_infos(asset_infos)

    if empty_cex_commitment is None:
        empty_cex_commitment = empty_asset_commitment(hasher, asset_infos)

    verifier = ChainVerifier(
        verifying_key,
        empty_cex_commitment,
        zk_verify=zk_verify,
        hasher=hasher,
        empty_tree_root=empty_tree_root,
        max_workers=max_workers,
        use_process_pool=use_process_pool,
    )
    result = verifier.verify(records)
    expected = check_final_commitment(hasher, asset_infos, result.final_cex_commitment)
    logger.info("All proofs verify passed (%d batches)", result.batches_verified)
    return SolvencyReport(
        final_tree_root=result.final_tree_root,
        final_cex_commitment=result.final_cex_commitment,
        expected_cex_commitment=expected,
        batches_verified=result.batches_verified,
    )


def verify_solvency(config, hasher=None, zk_verify=groth16_verify):
    """ChainConfig가 가리키는 파일들로 체인 모드 검증을 수행한다.

    hasher가 None이면 config.commitment_scheme에서 백엔드를 만든다.
    """
    if hasher is None:
        hasher = load_commitment_scheme(config.commitment_scheme)
    check_backend_roots(hasher, config.empty_account_tree_root)
    # 자산 정보는 검증 키나 증명 테이블을 읽기 전에 확인한다
    validate_asset_infos(config.cex_assets_info)

    try:
        verifying_key = load_verifying_key(config.zk_key_name)
    except ValueError as e:
        raise DecodeError(f"{config.zk_key_name}: {e}") from e
    records = load_proof_table(config.proof_table)

    return verify_chain_records(
        records,
        config.cex_assets_info,
        verifying_key,
        hasher=hasher,
        zk_verify=zk_verify,
        empty_tree_root=config.empty_account_tree_root,
        empty_cex_commitment=config.empty_cex_commitment,
        max_workers=config.max_workers,
        use_process_pool=config.use_process_pool,
    )

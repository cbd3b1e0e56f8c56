"""
자산 원장 커밋먼트 검사
=======================

신뢰할 수 있는 외부 자산 데이터로 기대 커밋먼트를 독립적으로 계산하여
체인의 최종 자산 목록 커밋먼트와 비교한다. 불일치는 증명된 원장 상태가
공개된 자산 데이터와 대응하지 않는다는 뜻이다.
"""

import logging

from zkpor.solvency.assets import empty_asset_infos, order_asset_infos, validate_asset_infos
from zkpor.solvency.errors import FinalCommitmentMismatchError

logger = logging.getLogger(__name__)


def expected_asset_commitment(hasher, asset_infos):
    return hasher.commit_asset_list(order_asset_infos(asset_infos))


def empty_asset_commitment(hasher, asset_infos):
    """설정된 자산 목록과 같은 길이의, 잔고가 모두 0인 원장의 커밋먼트."""
    return hasher.commit_asset_list(empty_asset_infos(asset_infos))


def check_final_commitment(hasher, asset_infos, final_commitment):
    """체인의 최종 자산 커밋먼트가 자산 데이터와 일치하는지 확인한다.

    Args:
        hasher: CommitmentScheme
        asset_infos: AssetInfo 리스트 (자산 인덱스당 하나)
        final_commitment: ChainResult.final_cex_commitment

    Returns:
        bytes: 기대 커밋먼트

    Raises:
        AssetInvariantError: equity < debt 또는 인덱스 오류
        FinalCommitmentMismatchError: 커밋먼트 불일치
    """
    validate_asset_infos(asset_infos)
    expected = expected_asset_commitment(hasher, asset_infos)
    if expected != final_commitment:
        logger.warning(
            "final cex asset commitment mismatch: expected %s, got %s",
            expected.hex(), final_commitment.hex(),
        )
        raise FinalCommitmentMismatchError(expected, final_commitment)
    return expected

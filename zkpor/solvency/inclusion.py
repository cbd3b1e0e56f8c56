"""
단일 사용자 포함 증명 검증
==========================

사용자가 공개한 잔고와 Merkle 경로로 계정 리프를 재계산하고,
공개된 계정 트리 루트까지 올라가 일치하는지 확인한다.

**리프 계산**:
  asset_commitment = CommitUserAssets(pad(assets))
  leaf = Hash(account_id_hash, total_equity, total_debt, asset_commitment)

**경로 계산** (깊이 d마다):
  leaf_index의 d번째 비트가 0 → acc = Hash(acc, sibling[d])  (acc가 왼쪽 자식)
  leaf_index의 d번째 비트가 1 → acc = Hash(sibling[d], acc)  (acc가 오른쪽 자식)

예시 (깊이 2, leaf_index = 2 = 0b10):

              root
             /    \\
           N0      N1
          /  \\    /  \\
         L0  L1  L2  L3

  siblings = [L3, N0]
  d=0: 비트 0 → acc = Hash(L2, L3) = N1
  d=1: 비트 1 → acc = Hash(N0, N1) = root ✓

부수 효과가 없는 순수 함수들이다.
"""

import logging
from dataclasses import dataclass

from zkpor.solvency.assets import DEFAULT_ASSET_COUNT, pad_account_assets

logger = logging.getLogger(__name__)

# 증명 생성 측 계정 트리 깊이
ACCOUNT_TREE_DEPTH = 28


@dataclass(frozen=True)
class UserProof:
    """단일 사용자 검증 입력."""

    account_index: int
    account_id_hash: bytes
    total_equity: int
    total_debt: int
    assets: tuple
    root: bytes
    siblings: tuple


@dataclass(frozen=True)
class UserVerification:
    verified: bool
    leaf_hash: bytes
    computed_root: bytes


def compute_leaf_hash(hasher, account_id_hash, total_equity, total_debt, asset_commitment):
    return hasher.hash(account_id_hash, total_equity, total_debt, asset_commitment)


def compute_merkle_root(hasher, leaf, leaf_index, siblings):
    """리프에서 시작해 형제 노드를 따라 루트를 재계산한다."""
    acc = leaf
    for d, sibling in enumerate(siblings):
        if (leaf_index >> d) & 1 == 0:
            acc = hasher.hash(acc, sibling)
        else:
            acc = hasher.hash(sibling, acc)
    return acc


def _path_fits(leaf_index, siblings, depth):
    if depth is not None and len(siblings) != depth:
        logger.debug("merkle proof length %d != tree depth %d", len(siblings), depth)
        return False
    return 0 <= leaf_index < (1 << len(siblings))


def verify_merkle_proof(hasher, root, leaf_index, siblings, leaf, depth=None):
    """Merkle 포함 증명을 검증한다.

    Args:
        hasher: CommitmentScheme
        root: 기대 루트 (32바이트)
        leaf_index: 리프 위치
        siblings: 깊이 순서의 형제 다이제스트 리스트
        leaf: 리프 다이제스트
        depth: 기대 트리 깊이 (None이면 len(siblings))

    Returns:
        bool: 포함되어 있으면 True. 경로 길이나 인덱스가 맞지 않으면 False.
    """
    if not _path_fits(leaf_index, siblings, depth):
        return False
    return compute_merkle_root(hasher, leaf, leaf_index, siblings) == root


def verify_user(hasher, user, asset_count=DEFAULT_ASSET_COUNT, depth=ACCOUNT_TREE_DEPTH):
    """사용자 한 명의 계정 리프가 계정 트리에 포함되어 있는지 검증한다.

    Args:
        hasher: CommitmentScheme
        user: UserProof
        asset_count: 사용자 자산 벡터 길이
        depth: 계정 트리 깊이

    Returns:
        UserVerification

    Raises:
        InvalidAssetIndexError: 자산 인덱스가 범위를 벗어나거나 중복될 때
    """
    dense = pad_account_assets(user.assets, asset_count)
    asset_commitment = hasher.commit_user_assets(dense)
    leaf = compute_leaf_hash(
        hasher, user.account_id_hash, user.total_equity, user.total_debt, asset_commitment
    )
    logger.info("merkle leave hash: %s", leaf.hex())

    computed_root = compute_merkle_root(hasher, leaf, user.account_index, user.siblings)
    verified = (
        _path_fits(user.account_index, user.siblings, depth) and computed_root == user.root
    )
    return UserVerification(verified=verified, leaf_hash=leaf, computed_root=computed_root)

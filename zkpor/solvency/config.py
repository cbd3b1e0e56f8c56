"""
검증기 설정
===========

증명 생성 도구와 같은 키 이름을 쓰는 JSON 설정 파일을 읽는다.

체인 모드 (config/config.json):
    {
      "ProofTable": "config/proof.csv",
      "ZkKeyName": "config/zkpor.vk.json",
      "CexAssetsInfo": [{"Index": 0, "Symbol": "BTC", "TotalEquity": 10, "TotalDebt": 2, "BasePrice": 1}],
      "AccountTreeDepth": 28,
      "EmptyAccountTreeRoot": "0e85b7...",
      "EmptyCexAssetListCommitment": "...",
      "MaxWorkers": 4,
      "UseProcessPool": false,
      "CommitmentScheme": "mypkg.poseidon:PoseidonScheme"
    }

사용자 모드 (config/user_config.json):
    {
      "AccountIndex": 9, "AccountIdHash": "<hex>", "TotalEquity": 100, "TotalDebt": 0,
      "Root": "<hex>", "Proof": ["<base64>", ...], "Assets": [{"Index": 0, "Equity": 100, "Debt": 0}]
    }

상대 경로는 설정 파일이 있는 디렉터리를 기준으로 해석한다.
CommitmentScheme을 생략하면 기본 백엔드(FieldSha256Hasher)를 쓴다.
"""

import json
import os
from dataclasses import dataclass

from zkpor.solvency.assets import (
    DEFAULT_ASSET_COUNT,
    MAX_BALANCE,
    account_asset_from_dict,
    asset_info_from_dict,
)
from zkpor.solvency.chain import EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28
from zkpor.solvency.errors import DecodeError
from zkpor.solvency.hashing import decode_base64, decode_hex_digest, DIGEST_SIZE
from zkpor.solvency.inclusion import ACCOUNT_TREE_DEPTH, UserProof

DEFAULT_CONFIG_PATH = os.path.join("config", "config.json")
DEFAULT_USER_CONFIG_PATH = os.path.join("config", "user_config.json")


@dataclass(frozen=True)
class ChainConfig:
    proof_table: str
    zk_key_name: str
    cex_assets_info: tuple
    account_tree_depth: int = ACCOUNT_TREE_DEPTH
    empty_account_tree_root: bytes = EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28
    empty_cex_commitment: bytes = None
    max_workers: int = 1
    use_process_pool: bool = False
    commitment_scheme: str = None


@dataclass(frozen=True)
class UserConfig:
    proof: UserProof
    asset_count: int = DEFAULT_ASSET_COUNT
    account_tree_depth: int = ACCOUNT_TREE_DEPTH
    commitment_scheme: str = None


def _read_json(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DecodeError(f"{path}: invalid JSON: {e}") from e


def _resolve(base_dir, path):
    if os.path.isabs(path):
        return path
    return os.path.join(base_dir, path)


def _positive_int(data, key, default):
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise DecodeError(f"{key}: expected a positive integer, got {value!r}")
    return value


def _flag(data, key):
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise DecodeError(f"{key}: expected true or false, got {value!r}")
    return value


def _scheme_path(data):
    value = data.get("CommitmentScheme")
    if value is not None and not isinstance(value, str):
        raise DecodeError(f"CommitmentScheme: expected 'module:Class', got {value!r}")
    return value


def _uint(value, field, bound=MAX_BALANCE):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0 or value >= bound:
        raise DecodeError(f"{field}: expected an integer in [0, {bound}), got {value!r}")
    return value


def chain_config_from_dict(data, base_dir="."):
    for key in ("ProofTable", "ZkKeyName", "CexAssetsInfo"):
        if key not in data:
            raise DecodeError(f"chain config is missing {key}")
    if not isinstance(data["CexAssetsInfo"], list):
        raise DecodeError("CexAssetsInfo: expected a list")

    depth = _positive_int(data, "AccountTreeDepth", ACCOUNT_TREE_DEPTH)
    empty_root = EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28
    if data.get("EmptyAccountTreeRoot"):
        empty_root = decode_hex_digest(data["EmptyAccountTreeRoot"], "EmptyAccountTreeRoot")
    elif depth != ACCOUNT_TREE_DEPTH:
        # 내장 상수는 깊이 28 트리의 루트뿐이다
        raise DecodeError(
            f"AccountTreeDepth {depth} requires EmptyAccountTreeRoot "
            f"(built-in root is for depth {ACCOUNT_TREE_DEPTH})"
        )
    empty_cex = None
    if data.get("EmptyCexAssetListCommitment"):
        empty_cex = decode_hex_digest(
            data["EmptyCexAssetListCommitment"], "EmptyCexAssetListCommitment"
        )

    return ChainConfig(
        proof_table=_resolve(base_dir, data["ProofTable"]),
        zk_key_name=_resolve(base_dir, data["ZkKeyName"]),
        cex_assets_info=tuple(asset_info_from_dict(d) for d in data["CexAssetsInfo"]),
        account_tree_depth=depth,
        empty_account_tree_root=empty_root,
        empty_cex_commitment=empty_cex,
        max_workers=_positive_int(data, "MaxWorkers", 1),
        use_process_pool=_flag(data, "UseProcessPool"),
        commitment_scheme=_scheme_path(data),
    )


def load_chain_config(path=DEFAULT_CONFIG_PATH):
    data = _read_json(path)
    if not isinstance(data, dict):
        raise DecodeError(f"{path}: expected a JSON object")
    return chain_config_from_dict(data, os.path.dirname(os.path.abspath(path)))


def user_config_from_dict(data):
    """사용자 설정 dict를 UserConfig로 변환한다.

    Raises:
        DecodeError: 필드 누락 또는 형식 오류 (Root/AccountIdHash는 32바이트 hex,
                     Proof의 각 원소는 32바이트 base64)
    """
    required = ("AccountIndex", "AccountIdHash", "TotalEquity", "TotalDebt", "Root", "Proof")
    missing = [key for key in required if key not in data]
    if missing:
        raise DecodeError(f"user config is missing {missing}")

    depth = _positive_int(data, "AccountTreeDepth", ACCOUNT_TREE_DEPTH)
    siblings = []
    if not isinstance(data["Proof"], list):
        raise DecodeError("Proof: expected a list of base64 digests")
    for i, item in enumerate(data["Proof"]):
        raw = decode_base64(item, f"Proof[{i}]")
        if len(raw) != DIGEST_SIZE:
            raise DecodeError("invalid proof")
        siblings.append(raw)

    assets = data.get("Assets") or []
    if not isinstance(assets, list):
        raise DecodeError("Assets: expected a list")

    proof = UserProof(
        account_index=_uint(data["AccountIndex"], "AccountIndex", 1 << depth),
        account_id_hash=decode_hex_digest(data["AccountIdHash"], "AccountIdHash"),
        total_equity=_uint(data["TotalEquity"], "TotalEquity"),
        total_debt=_uint(data["TotalDebt"], "TotalDebt"),
        assets=tuple(account_asset_from_dict(a) for a in assets),
        root=decode_hex_digest(data["Root"], "Root"),
        siblings=tuple(siblings),
    )
    return UserConfig(
        proof=proof,
        asset_count=_positive_int(data, "AssetCount", DEFAULT_ASSET_COUNT),
        account_tree_depth=depth,
        commitment_scheme=_scheme_path(data),
    )


def load_user_config(path=DEFAULT_USER_CONFIG_PATH):
    data = _read_json(path)
    if not isinstance(data, dict):
        raise DecodeError(f"{path}: expected a JSON object")
    return user_config_from_dict(data)

"""
다이제스트와 커밋먼트
=====================

체인/Merkle 검증 로직이 의존하는 암호학적 기능(capability)을 정의한다.

  - hash(*values)              → Digest   (배치 공개 입력, Merkle 노드, 사용자 리프)
  - commit_asset_list(infos)   → Digest   (거래소 자산 목록 커밋먼트)
  - commit_user_assets(assets) → Digest   (사용자 자산 커밋먼트)

검증 로직은 CommitmentScheme 인터페이스에만 의존하므로, 증명 생성 측과
동일한 해시 백엔드(예: gnark Poseidon)를 주입하면 그대로 동작한다.
기본 백엔드 FieldSha256Hasher는 각 입력을 BN254 스칼라 필드 원소로 환원한 뒤
32바이트 빅엔디안으로 이어 붙여 SHA-256을 계산하고, 결과를 다시 필드로 환원한다.

Digest는 항상 32바이트 bytes이다.
"""

import base64
import binascii
import hashlib
import importlib
import string

from zkpor.groth16.field import CURVE_ORDER, to_field
from zkpor.solvency.errors import DecodeError

DIGEST_SIZE = 32

_HEX_DIGITS = set(string.hexdigits)


class CommitmentScheme:
    """해시/커밋먼트 기능 인터페이스.

    prover_compatible: 증명 생성 측과 같은 해시(Poseidon)를 계산하는 백엔드이면 True.
    False인 백엔드는 증명 생성 측의 빈 트리 루트 상수와 함께 쓸 수 없다.
    """

    prover_compatible = True

    def hash(self, *values):
        raise NotImplementedError

    def commit_asset_list(self, asset_infos):
        raise NotImplementedError

    def commit_user_assets(self, account_assets):
        raise NotImplementedError


class FieldSha256Hasher(CommitmentScheme):
    """SHA-256 기반 필드 해시 백엔드.

    각 입력 v에 대해 to_field(v)를 32바이트 빅엔디안으로 직렬화하여 누적한다.
    출력은 r 미만의 정수를 32바이트로 인코딩한 값이므로, 출력 다이제스트를
    다시 입력으로 넣어도 값이 바뀌지 않는다 (Merkle 경로 재귀에 필요).

    예시:
        >>> h = FieldSha256Hasher()
        >>> len(h.hash(b"\\x01" * 32, 7))  # 32
    """

    prover_compatible = False

    def __init__(self, domain=b""):
        self.domain = domain

    def hash(self, *values):
        h = hashlib.sha256(self.domain)
        for v in values:
            h.update(int(to_field(v)).to_bytes(DIGEST_SIZE, "big"))
        digest_int = int.from_bytes(h.digest(), "big") % CURVE_ORDER
        return digest_int.to_bytes(DIGEST_SIZE, "big")

    def commit_asset_list(self, asset_infos):
        # 자산마다 (index, equity, debt, base_price)
        elements = []
        for info in asset_infos:
            elements.extend([info.index, info.total_equity, info.total_debt, info.base_price])
        return self.hash(*elements)

    def commit_user_assets(self, account_assets):
        elements = []
        for asset in account_assets:
            elements.extend([asset.equity, asset.debt])
        return self.hash(*elements)


def decode_digest(text, field="digest"):
    """텍스트 인코딩된 32바이트 다이제스트를 디코딩한다.

    64자리 16진수(선택적 0x 접두사)는 hex로, 그 외에는 엄격한 base64로 해석한다.

    Args:
        text: 인코딩된 문자열
        field: 오류 메시지에 표시할 필드 이름

    Returns:
        bytes: 32바이트 다이제스트

    Raises:
        DecodeError: 형식이 잘못되었거나 길이가 32바이트가 아닐 때
    """
    if not isinstance(text, str):
        raise DecodeError(f"{field}: expected a string, got {type(text).__name__}")
    s = text.strip()
    if s.startswith(("0x", "0X")):
        s = s[2:]
        if len(s) != 2 * DIGEST_SIZE or not set(s) <= _HEX_DIGITS:
            raise DecodeError(f"{field}: invalid hex digest {text!r}")
    if len(s) == 2 * DIGEST_SIZE and set(s) <= _HEX_DIGITS:
        raw = bytes.fromhex(s)
    else:
        raw = decode_base64(s, field)
    if len(raw) != DIGEST_SIZE:
        raise DecodeError(f"{field}: digest must be {DIGEST_SIZE} bytes, got {len(raw)}")
    return raw


def decode_hex_digest(text, field="digest"):
    """16진수 전용 다이제스트 디코더 (설정 파일의 Root, AccountIdHash 등)."""
    if not isinstance(text, str):
        raise DecodeError(f"{field}: expected a hex string")
    s = text.strip()
    if s.startswith(("0x", "0X")):
        s = s[2:]
    try:
        raw = bytes.fromhex(s)
    except ValueError as e:
        raise DecodeError(f"{field}: invalid hex {text!r}") from e
    if len(raw) != DIGEST_SIZE:
        raise DecodeError(f"{field}: digest must be {DIGEST_SIZE} bytes, got {len(raw)}")
    return raw


def decode_base64(text, field="value"):
    if not isinstance(text, str):
        raise DecodeError(f"{field}: expected a base64 string, got {type(text).__name__}")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"{field}: invalid base64: {e}") from e


def encode_base64(raw):
    return base64.b64encode(raw).decode("ascii")


DEFAULT_COMMITMENT_SCHEME = "zkpor.solvency.hashing:FieldSha256Hasher"


def load_commitment_scheme(path=None):
    """module:Class 형식의 경로에서 CommitmentScheme 백엔드를 만든다.

    path가 None이면 기본 백엔드(FieldSha256Hasher)를 반환한다.
    클래스는 인자 없이 생성할 수 있어야 한다.

    Raises:
        DecodeError: 경로 형식 오류, import 실패, CommitmentScheme이 아닐 때
    """
    if path is None:
        return FieldSha256Hasher()
    if not isinstance(path, str) or ":" not in path:
        raise DecodeError(f"commitment scheme must be 'module:Class', got {path!r}")
    module_name, _, class_name = path.partition(":")
    try:
        module = importlib.import_module(module_name)
        cls = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise DecodeError(f"cannot load commitment scheme {path}: {e}") from e
    if not (isinstance(cls, type) and issubclass(cls, CommitmentScheme)):
        raise DecodeError(f"{path} is not a CommitmentScheme")
    return cls()

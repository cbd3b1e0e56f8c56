"""
Groth16 Verifier (BN254)
=========================

배치 증명의 영지식 검사(ZkVerify)를 담당하는 증명 시스템 백엔드.

**검증 방정식**:
  e(A, B) == e(α, β) · e(vk_x, γ) · e(C, δ)

  vk_x = IC₀ + Σᵢ xᵢ · ICᵢ₊₁   (xᵢ: 공개 입력)

  배치 회로의 공개 입력은 배치 커밋먼트 하나이므로 IC는 두 개의 점을 가진다.

**증명 바이트 형식** (256 바이트, 32바이트 빅엔디안 좌표):
  A.x | A.y | B.x.c0 | B.x.c1 | B.y.c0 | B.y.c1 | C.x | C.y
  모든 좌표가 0인 점은 무한원점으로 해석한다.

**검증 키 JSON 형식**:
  {"alpha_g1": [x, y], "beta_g2": [[x0, x1], [y0, y1]],
   "gamma_g2": ..., "delta_g2": ..., "ic": [[x, y], ...]}
  정수는 10진 문자열로 저장한다.

사용 예시:
    >>> vk = load_verifying_key("zkpor.vk.json")
    >>> groth16_verify(proof_bytes, vk, batch_commitment)  # True / False
"""

import json

from py_ecc import bn128
from py_ecc.fields import bn128_FQ as FQ

from zkpor.groth16.field import (
    COORD_SIZE,
    FIELD_MODULUS,
    ec_add,
    ec_mul,
    ec_pairing,
    is_g1_point,
    is_g2_point,
    to_field,
)

G1_SIZE = 2 * COORD_SIZE
G2_SIZE = 4 * COORD_SIZE
PROOF_SIZE = 2 * G1_SIZE + G2_SIZE


class Proof:
    """Groth16 증명 (A ∈ G1, B ∈ G2, C ∈ G1)."""

    def __init__(self, a, b, c):
        self.a = a
        self.b = b
        self.c = c


class VerifyingKey:
    """Groth16 검증 키.

    속성:
        alpha_g1: α·G1
        beta_g2, gamma_g2, delta_g2: β·G2, γ·G2, δ·G2
        ic: 공개 입력 계수 점 리스트 [IC₀, IC₁, ...] (G1)

    한 번 로드한 뒤에는 읽기 전용이며, 여러 스레드의 검증이 공유한다.
    """

    def __init__(self, alpha_g1, beta_g2, gamma_g2, delta_g2, ic):
        if len(ic) < 1:
            raise ValueError("검증 키에는 최소 하나의 IC 점이 필요합니다")
        self.alpha_g1 = alpha_g1
        self.beta_g2 = beta_g2
        self.gamma_g2 = gamma_g2
        self.delta_g2 = delta_g2
        self.ic = list(ic)

    @property
    def num_public_inputs(self):
        return len(self.ic) - 1

    @classmethod
    def from_dict(cls, data):
        try:
            vk = cls(
                deserialize_g1(data["alpha_g1"]),
                deserialize_g2(data["beta_g2"]),
                deserialize_g2(data["gamma_g2"]),
                deserialize_g2(data["delta_g2"]),
                [deserialize_g1(p) for p in data["ic"]],
            )
        except (KeyError, TypeError, IndexError) as e:
            raise ValueError(f"검증 키 형식이 잘못되었습니다: {e}") from e
        for point in [vk.alpha_g1] + vk.ic:
            if not is_g1_point(point):
                raise ValueError("검증 키의 G1 점이 곡선 위에 있지 않습니다")
        for point in (vk.beta_g2, vk.gamma_g2, vk.delta_g2):
            if not is_g2_point(point):
                raise ValueError("검증 키의 G2 점이 유효하지 않습니다")
        return vk

    def to_dict(self):
        return {
            "alpha_g1": serialize_g1(self.alpha_g1),
            "beta_g2": serialize_g2(self.beta_g2),
            "gamma_g2": serialize_g2(self.gamma_g2),
            "delta_g2": serialize_g2(self.delta_g2),
            "ic": [serialize_g1(p) for p in self.ic],
        }


def load_verifying_key(path):
    """JSON 파일에서 검증 키를 로드한다.

    Raises:
        OSError: 파일을 읽을 수 없을 때
        ValueError: JSON 또는 점 형식이 잘못되었을 때
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"검증 키 JSON을 파싱할 수 없습니다: {e}") from e
    return VerifyingKey.from_dict(data)


# ─── 점 직렬화 (10진 문자열) ───

def serialize_g1(point):
    """G1 point → [str, str] or None"""
    if point is None:
        return None
    return [str(int(point[0])), str(int(point[1]))]


def deserialize_g1(data):
    """[str, str] or None → G1 point"""
    if data is None:
        return None
    return (FQ(int(data[0])), FQ(int(data[1])))


def serialize_g2(point):
    """G2 point → [[str,str],[str,str]] or None"""
    if point is None:
        return None
    return [
        [str(int(point[0].coeffs[0])), str(int(point[0].coeffs[1]))],
        [str(int(point[1].coeffs[0])), str(int(point[1].coeffs[1]))],
    ]


def deserialize_g2(data):
    """[[str,str],[str,str]] or None → G2 point"""
    if data is None:
        return None
    return (
        bn128.FQ2([int(data[0][0]), int(data[0][1])]),
        bn128.FQ2([int(data[1][0]), int(data[1][1])]),
    )


# ─── 증명 바이트 코덱 ───

def _read_coords(raw, count):
    coords = []
    for i in range(count):
        value = int.from_bytes(raw[i * COORD_SIZE:(i + 1) * COORD_SIZE], "big")
        if value >= FIELD_MODULUS:
            raise ValueError("좌표가 기저 필드 범위를 벗어났습니다")
        coords.append(value)
    return coords


def _g1_from_bytes(raw):
    x, y = _read_coords(raw, 2)
    if x == 0 and y == 0:
        return None
    point = (FQ(x), FQ(y))
    if not is_g1_point(point):
        raise ValueError("G1 점이 곡선 위에 있지 않습니다")
    return point


def _g2_from_bytes(raw):
    x0, x1, y0, y1 = _read_coords(raw, 4)
    if x0 == x1 == y0 == y1 == 0:
        return None
    point = (bn128.FQ2([x0, x1]), bn128.FQ2([y0, y1]))
    if not is_g2_point(point):
        raise ValueError("G2 점이 유효하지 않습니다")
    return point


def _g1_to_bytes(point):
    if point is None:
        return b"\x00" * G1_SIZE
    return b"".join(int(c).to_bytes(COORD_SIZE, "big") for c in point)


def _g2_to_bytes(point):
    if point is None:
        return b"\x00" * G2_SIZE
    out = bytearray()
    for fq2 in point:
        for c in fq2.coeffs:
            out.extend(int(c).to_bytes(COORD_SIZE, "big"))
    return bytes(out)


def proof_from_bytes(raw):
    """256바이트 직렬화에서 Proof를 복원한다.

    Raises:
        ValueError: 길이가 맞지 않거나 점이 유효하지 않을 때
    """
    if len(raw) != PROOF_SIZE:
        raise ValueError(f"증명 길이는 {PROOF_SIZE} 바이트여야 합니다: {len(raw)}")
    a = _g1_from_bytes(raw[:G1_SIZE])
    b = _g2_from_bytes(raw[G1_SIZE:G1_SIZE + G2_SIZE])
    c = _g1_from_bytes(raw[G1_SIZE + G2_SIZE:])
    return Proof(a, b, c)


def proof_to_bytes(proof):
    return _g1_to_bytes(proof.a) + _g2_to_bytes(proof.b) + _g1_to_bytes(proof.c)


# ─── 검증 ───

def lhs(proof):
    return ec_pairing(proof.b, proof.a)


def rhs(proof, vk, public_inputs):
    vk_x = vk.ic[0]
    for i, x in enumerate(public_inputs):
        vk_x = ec_add(vk_x, ec_mul(vk.ic[i + 1], to_field(x)))
    RHS = ec_pairing(vk.beta_g2, vk.alpha_g1)
    RHS = (RHS * ec_pairing(vk.gamma_g2, vk_x)) * ec_pairing(vk.delta_g2, proof.c)
    return RHS


def verify(proof, vk, public_inputs):
    """Groth16 페어링 검사를 수행한다.

    Args:
        proof: Proof
        vk: VerifyingKey
        public_inputs: 공개 입력 리스트 (int, bytes 또는 FR)

    Returns:
        bool: 검증 성공 여부

    Raises:
        ValueError: 공개 입력 개수가 검증 키와 맞지 않을 때
    """
    if len(public_inputs) != vk.num_public_inputs:
        raise ValueError(
            f"공개 입력 개수 {len(public_inputs)}가 검증 키의 {vk.num_public_inputs}와 다릅니다"
        )
    return lhs(proof) == rhs(proof, vk, public_inputs)


def groth16_verify(proof_bytes, vk, public_input):
    """ZkVerify 기능: 직렬화된 배치 증명을 배치 커밋먼트에 대해 검증한다.

    Args:
        proof_bytes: 256바이트 증명
        vk: VerifyingKey
        public_input: 32바이트 배치 커밋먼트 (FR로 환원됨)

    Returns:
        bool
    """
    proof = proof_from_bytes(proof_bytes)
    return verify(proof, vk, [public_input])

"""
BN254 기반 모듈: 스칼라 필드 및 타원곡선 연산
==============================================

Groth16 검증과 커밋먼트 해싱에서 공통으로 쓰는 대수적 도구를 정의한다.

**유한체 FR**:
  bn128(= BN254) 곡선의 스칼라 필드. 배치 증명의 공개 입력(public input)과
  해시 입력은 모두 이 필드의 원소로 환원된다.

**타원곡선 연산**:
  G1, G2 그룹 연산과 페어링. 증명 바이트열을 점으로 복원할 때의
  곡선 위 검사(is_on_curve)와 부분군 검사도 여기서 제공한다.

사용 예시:
    >>> from zkpor.groth16.field import FR, G1, ec_mul
    >>> P = ec_mul(G1, FR(5))
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128


class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    예시:
        >>> FR(3) * FR(7)   # FR(21)
    """
    field_modulus = bn128.curve_order


# 스칼라 필드 위수 r
CURVE_ORDER = bn128.curve_order

# 기저 필드 위수 q (점 좌표의 범위)
FIELD_MODULUS = bn128.field_modulus

G1 = bn128.G1
G2 = bn128.G2

# 좌표 하나의 직렬화 크기 (바이트)
COORD_SIZE = 32


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point."""
    if isinstance(scalar, FR):
        scalar = int(scalar)
    return bn128.multiply(point, scalar % CURVE_ORDER)


def ec_add(p1, p2):
    """타원곡선 점 덧셈: p1 + p2."""
    return bn128.add(p1, p2)


def ec_pairing(g2_point, g1_point):
    """쌍선형 페어링 e(G1, G2) → GT.

    주의:
        py_ecc.bn128.pairing의 인자 순서는 (G2, G1)이다.
    """
    return bn128.pairing(g2_point, g1_point)


def is_g1_point(point):
    """G1 점이 곡선 y² = x³ + 3 위에 있는지 확인한다. 무한원점은 True."""
    return bn128.is_on_curve(point, bn128.b)


def is_g2_point(point):
    """G2 점이 트위스트 곡선 위에 있고 위수 r 부분군에 속하는지 확인한다.

    G2 트위스트 곡선에는 위수 r이 아닌 점도 존재하므로,
    곡선 위 검사만으로는 부족하고 r·P = O 인지도 확인해야 한다.
    """
    if point is None:
        return True
    if not bn128.is_on_curve(point, bn128.b2):
        return False
    return bn128.multiply(point, CURVE_ORDER) is None


def to_field(value):
    """정수 또는 바이트열을 FR 원소로 환원한다.

    바이트열은 빅엔디안 정수로 해석한다 (gnark의 SetBytes와 같은 규약).

    Args:
        value: int (음수 불가), bytes, 또는 FR

    Returns:
        FR

    Raises:
        ValueError: 음수이거나 지원하지 않는 타입일 때
    """
    if isinstance(value, FR):
        return value
    if isinstance(value, (bytes, bytearray)):
        return FR(int.from_bytes(value, "big") % CURVE_ORDER)
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise ValueError(f"음수는 필드 원소로 변환할 수 없습니다: {value}")
        return FR(value % CURVE_ORDER)
    raise ValueError(f"필드 원소로 변환할 수 없는 타입입니다: {type(value).__name__}")

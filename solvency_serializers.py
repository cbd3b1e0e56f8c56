"""
검증 결과 직렬화/역직렬화 헬퍼
================================

TinyDB와 JSON 응답에 저장 가능한 형태로 검증 결과를 변환한다.
Digest, SolvencyReport, UserVerification, VerificationError 등.
"""

from zkpor.solvency.audit import SolvencyReport
from zkpor.solvency.inclusion import UserVerification


# ─── Digest ───

def serialize_digest(digest):
    """bytes → hex str or None"""
    if digest is None:
        return None
    return digest.hex()


def deserialize_digest(s):
    """hex str or None → bytes"""
    if s is None:
        return None
    return bytes.fromhex(s)


def digest_short(digest):
    """화면 표시용 축약 문자열 (앞 8자리...뒤 4자리)."""
    if digest is None:
        return "None"
    h = digest.hex()
    return f"{h[:8]}...{h[-4:]}"


# ─── SolvencyReport ───

def serialize_report(report):
    """SolvencyReport → dict"""
    return {
        "final_tree_root": serialize_digest(report.final_tree_root),
        "final_cex_commitment": serialize_digest(report.final_cex_commitment),
        "expected_cex_commitment": serialize_digest(report.expected_cex_commitment),
        "batches_verified": report.batches_verified,
    }


def deserialize_report(data):
    """dict → SolvencyReport"""
    return SolvencyReport(
        final_tree_root=deserialize_digest(data["final_tree_root"]),
        final_cex_commitment=deserialize_digest(data["final_cex_commitment"]),
        expected_cex_commitment=deserialize_digest(data["expected_cex_commitment"]),
        batches_verified=data["batches_verified"],
    )


# ─── UserVerification ───

def serialize_user_verification(result):
    return {
        "verified": result.verified,
        "leaf_hash": serialize_digest(result.leaf_hash),
        "computed_root": serialize_digest(result.computed_root),
    }


def deserialize_user_verification(data):
    return UserVerification(
        verified=data["verified"],
        leaf_hash=deserialize_digest(data["leaf_hash"]),
        computed_root=deserialize_digest(data["computed_root"]),
    )


# ─── VerificationError ───

def serialize_error(error):
    """VerificationError → dict (batch_number는 배치 단위 오류에만 존재)"""
    return {
        "error": error.kind,
        "batch_number": getattr(error, "batch_number", None),
        "message": str(error),
    }

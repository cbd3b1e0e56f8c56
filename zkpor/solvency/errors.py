"""
지급능력 증명 검증 오류 분류
============================

모든 오류는 VerificationError를 상속한다. 체인 모드의 오류는 모두 치명적이며
첫 번째 위반에서 처리를 멈춘다. 재시도는 하지 않는다 (암호학적/일관성 실패는
일시적인 오류가 아니다).

  VerificationError
  ├── DecodeError                  입력 레코드/설정 형식 오류
  ├── SequenceError                배치 번호 누락/중복
  │   ├── NonContiguousBatchError
  │   └── DuplicateBatchError
  ├── ChainVerificationError       배치 단위 검증 실패 (batch_number 포함)
  │   ├── ContinuityError
  │   ├── PublicInputMismatchError
  │   └── ProofRejectedError
  ├── AssetInvariantError          자산 equity < debt
  ├── InvalidAssetIndexError       사용자 자산 인덱스 범위/중복 오류
  └── FinalCommitmentMismatchError 최종 자산 커밋먼트 불일치

단일 사용자 Merkle 불일치는 예외가 아니라 False로 보고된다.
"""


class VerificationError(Exception):
    """검증 오류의 공통 기반 클래스."""

    kind = "verification_error"


class DecodeError(VerificationError):
    kind = "decode_error"


class SequenceError(VerificationError):
    """배치 번호가 0부터 1씩 증가하지 않는다."""

    kind = "sequence_error"

    def __init__(self, batch_number, message):
        super().__init__(message)
        self.batch_number = batch_number


class NonContiguousBatchError(SequenceError):
    kind = "non_contiguous_batch"

    def __init__(self, batch_number, found=None):
        if found is None:
            message = f"batch {batch_number} is missing"
        else:
            message = f"expected batch {batch_number}, found batch {found}"
        super().__init__(batch_number, message)
        self.found = found


class DuplicateBatchError(SequenceError):
    kind = "duplicate_batch"

    def __init__(self, batch_number):
        super().__init__(batch_number, f"batch {batch_number} appears more than once")


class ChainVerificationError(VerificationError):
    """특정 배치에서 발생한 체인 검증 실패."""

    kind = "chain_verification_error"

    def __init__(self, batch_number, message):
        super().__init__(message)
        self.batch_number = batch_number


class ContinuityError(ChainVerificationError):
    """배치의 시작 상태가 직전 배치의 종료 상태와 다르다."""

    kind = "discontinuous_state"

    def __init__(self, batch_number):
        super().__init__(
            batch_number,
            f"mismatch account tree root or cex asset list commitment: {batch_number}",
        )


class PublicInputMismatchError(ChainVerificationError):
    """재계산한 공개 입력이 레코드의 공개 입력과 다르다."""

    kind = "public_input_mismatch"

    def __init__(self, batch_number, expected, actual):
        super().__init__(
            batch_number,
            f"public input verify failed {batch_number}: {expected.hex()}:{actual.hex()}",
        )
        self.expected = expected
        self.actual = actual


class ProofRejectedError(ChainVerificationError):
    kind = "proof_rejected"

    def __init__(self, batch_number, reason=None):
        message = f"proof verify failed: {batch_number}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(batch_number, message)
        self.reason = reason


class AssetInvariantError(VerificationError):
    kind = "invalid_asset_info"


class InvalidAssetIndexError(VerificationError):
    kind = "invalid_asset_index"

    def __init__(self, index, message=None):
        super().__init__(message or f"invalid asset index {index}")
        self.index = index


class FinalCommitmentMismatchError(VerificationError):
    kind = "final_commitment_mismatch"

    def __init__(self, expected, actual):
        super().__init__(
            f"Final Cex Assets Info Not Match: expected {expected.hex()}, got {actual.hex()}"
        )
        self.expected = expected
        self.actual = actual

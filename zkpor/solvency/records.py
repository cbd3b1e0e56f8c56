"""
배치 레코드 디코딩
==================

증명 테이블(CSV 또는 DB 행)의 한 줄을 타입이 있는 BatchRecord로 변환한다.

**증명 테이블 컬럼**:
  batch_number                 배치 번호 (0부터 1씩 증가)
  proof_info                   base64 인코딩된 Groth16 증명
  cex_asset_list_commitments   [이전, 새] 자산 목록 커밋먼트 (JSON 배열 또는 쉼표 구분)
  account_tree_roots           [이전, 새] 계정 트리 루트
  batch_commitment             공개 입력 커밋먼트

다이제스트는 hex 또는 base64 모두 받는다 (hashing.decode_digest 참고).
"""

import csv
import json
import logging
from dataclasses import dataclass

from zkpor.solvency.errors import DecodeError, DuplicateBatchError, NonContiguousBatchError
from zkpor.solvency.hashing import decode_base64, decode_digest, encode_base64

logger = logging.getLogger(__name__)

MAX_BATCH_NUMBER = 1 << 63

COLUMNS = (
    "batch_number",
    "proof_info",
    "cex_asset_list_commitments",
    "account_tree_roots",
    "batch_commitment",
)


@dataclass(frozen=True)
class BatchRecord:
    """디코딩된 배치 증명 레코드. 생성 후 변경되지 않는다."""

    batch_number: int
    proof_bytes: bytes
    cex_commitments: tuple  # (prev, new)
    tree_roots: tuple       # (prev, new)
    public_input: bytes

    def to_row(self):
        """CSV/JSON 행으로 다시 인코딩한다 (base64)."""
        return {
            "batch_number": self.batch_number,
            "proof_info": encode_base64(self.proof_bytes),
            "cex_asset_list_commitments": json.dumps([encode_base64(c) for c in self.cex_commitments]),
            "account_tree_roots": json.dumps([encode_base64(r) for r in self.tree_roots]),
            "batch_commitment": encode_base64(self.public_input),
        }


def _parse_pair(value, field):
    if isinstance(value, (list, tuple)):
        items = list(value)
    elif isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError as e:
                raise DecodeError(f"{field}: invalid JSON array: {e}") from e
        else:
            items = [part.strip() for part in text.split(",") if part.strip()]
    else:
        raise DecodeError(f"{field}: expected a list of two digests")
    if len(items) != 2:
        raise DecodeError(f"{field}: expected 2 digests, got {len(items)}")
    return tuple(decode_digest(item, f"{field}[{i}]") for i, item in enumerate(items))


def _parse_batch_number(value):
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"batch_number: invalid integer {value!r}") from e
    if number < 0 or number >= MAX_BATCH_NUMBER:
        raise DecodeError(f"batch_number: {number} out of range")
    return number


def decode_batch_row(row):
    """증명 테이블의 한 행(dict)을 BatchRecord로 디코딩한다.

    Raises:
        DecodeError: 컬럼 누락, 인코딩 오류, 길이 오류
    """
    if not isinstance(row, dict):
        raise DecodeError(f"proof row must be an object, got {type(row).__name__}")
    missing = [c for c in COLUMNS if row.get(c) in (None, "")]
    if missing:
        raise DecodeError(f"proof row is missing fields {missing}")

    batch_number = _parse_batch_number(row["batch_number"])
    proof_bytes = decode_base64(row["proof_info"], f"batch {batch_number} proof_info")
    cex_commitments = _parse_pair(
        row["cex_asset_list_commitments"], f"batch {batch_number} cex_asset_list_commitments"
    )
    tree_roots = _parse_pair(row["account_tree_roots"], f"batch {batch_number} account_tree_roots")
    public_input = decode_digest(row["batch_commitment"], f"batch {batch_number} batch_commitment")
    return BatchRecord(batch_number, proof_bytes, cex_commitments, tree_roots, public_input)


def load_proof_table(path):
    """CSV 증명 테이블 파일에서 모든 배치 레코드를 읽는다 (파일 순서 그대로)."""
    records = []
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        header = reader.fieldnames or []
        missing = [c for c in COLUMNS if c not in header]
        if missing:
            raise DecodeError(f"{path}: proof table is missing columns {missing}")
        for line_no, row in enumerate(reader, start=2):
            try:
                records.append(decode_batch_row(row))
            except DecodeError as e:
                raise DecodeError(f"{path}:{line_no}: {e}") from e
    logger.info("loaded %d batch records from %s", len(records), path)
    return records


def index_batches(records):
    """레코드를 배치 번호 순서의 밀집 리스트로 재배열한다.

    레코드는 어떤 순서로 와도 되지만, 배치 번호는 0..n-1을 정확히 한 번씩
    채워야 한다.

    Raises:
        DuplicateBatchError: 같은 배치 번호가 두 번 이상 나올 때
        NonContiguousBatchError: i번째 위치의 배치 번호가 i가 아닐 때 (누락)
    """
    by_number = {}
    for record in records:
        if record.batch_number in by_number:
            raise DuplicateBatchError(record.batch_number)
        by_number[record.batch_number] = record

    ordered = [by_number[n] for n in sorted(by_number)]
    for i, record in enumerate(ordered):
        if record.batch_number != i:
            raise NonContiguousBatchError(i, found=record.batch_number)
    return ordered

"""
지급능력 증명 검증 Flask Blueprint
====================================

엔드포인트:
  POST /solvency/verify/user      단일 사용자 포함 증명 검증
  POST /solvency/verify/chain     배치 증명 체인 + 최종 자산 커밋먼트 검증
  GET  /solvency/reports/<kind>   마지막 검증 결과 조회 (kind: user | chain)

검증 키와 ZkVerify 백엔드는 app.config["VERIFYING_KEY"], app.config["ZK_VERIFY"]에서,
해시 백엔드는 app.config["HASHER"]에서 가져온다. 요청 본문으로는 백엔드를 고를 수 없다.
"""

import logging

from flask import Blueprint, current_app, jsonify, request
from tinydb import Query

from zkpor.groth16.verifying import groth16_verify
from zkpor.solvency.assets import asset_info_from_dict
from zkpor.solvency.audit import verify_chain_records
from zkpor.solvency.chain import EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28
from zkpor.solvency.config import user_config_from_dict
from zkpor.solvency.errors import DecodeError, SequenceError, VerificationError
from zkpor.solvency.hashing import decode_hex_digest, load_commitment_scheme
from zkpor.solvency.inclusion import verify_user
from zkpor.solvency.records import decode_batch_row

from solvency_serializers import (
    digest_short,
    serialize_error,
    serialize_report,
    serialize_user_verification,
)

logger = logging.getLogger(__name__)

solvency_bp = Blueprint('solvency', __name__, url_prefix='/solvency')

DATA = Query()

# DB는 app.py에서 주입
DB = None

REPORT_KINDS = ("user", "chain")


def init_solvency_bp(db):
    """app.py에서 DB를 주입받는다."""
    global DB
    DB = db


# ─── DB 헬퍼 ───

def db_get(key):
    """DB에서 키로 데이터를 조회한다."""
    result = DB.search(DATA.type == key)
    if not result:
        return None
    return result[0].get("data")


def db_set(key, data):
    """DB에 키로 데이터를 저장한다."""
    DB.upsert({"type": key, "data": data}, DATA.type == key)


def _hasher():
    return current_app.config.get("HASHER") or load_commitment_scheme()


def _error_response(error):
    body = serialize_error(error)
    status = 400 if isinstance(error, (DecodeError, SequenceError)) else 422
    return jsonify(body), status


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise DecodeError("request body must be a JSON object")
    return data


# ──────────────────────────────────────────────────────────────
# 사용자 모드
# ──────────────────────────────────────────────────────────────

@solvency_bp.route("/verify/user", methods=["POST"])
def verify_user_route():
    """사용자 설정 JSON으로 포함 증명을 검증한다."""
    try:
        config = user_config_from_dict(_json_body())
        result = verify_user(_hasher(), config.proof, config.asset_count, config.account_tree_depth)
    except VerificationError as e:
        return _error_response(e)

    data = serialize_user_verification(result)
    data["account_index"] = config.proof.account_index
    db_set("report.user", data)
    return jsonify(data)


# ──────────────────────────────────────────────────────────────
# 체인 모드
# ──────────────────────────────────────────────────────────────

@solvency_bp.route("/verify/chain", methods=["POST"])
def verify_chain_route():
    """증명 테이블 행과 자산 정보로 체인 모드 검증을 수행한다.

    요청 본문:
        {"records": [{batch_number, proof_info, ...}, ...],
         "cex_assets_info": [{Index, Symbol, TotalEquity, TotalDebt, BasePrice}, ...],
         "empty_account_tree_root": "<hex>"  (선택),
         "empty_cex_asset_list_commitment": "<hex>"  (선택)}
    """
    verifying_key = current_app.config.get("VERIFYING_KEY")
    if verifying_key is None:
        return jsonify({"error": "verifying_key_missing", "batch_number": None,
                        "message": "no verifying key loaded"}), 503

    try:
        body = _json_body()
        rows = body.get("records")
        infos = body.get("cex_assets_info")
        if not isinstance(rows, list) or not isinstance(infos, list):
            raise DecodeError("records and cex_assets_info must be lists")
        asset_infos = [asset_info_from_dict(d) for d in infos]
        records = [decode_batch_row(row) for row in rows]

        empty_root = EMPTY_ACCOUNT_TREE_ROOT_DEPTH_28
        if body.get("empty_account_tree_root"):
            empty_root = decode_hex_digest(body["empty_account_tree_root"], "empty_account_tree_root")
        empty_cex = None
        if body.get("empty_cex_asset_list_commitment"):
            empty_cex = decode_hex_digest(
                body["empty_cex_asset_list_commitment"], "empty_cex_asset_list_commitment"
            )

        report = verify_chain_records(
            records,
            asset_infos,
            verifying_key,
            hasher=_hasher(),
            zk_verify=current_app.config.get("ZK_VERIFY") or groth16_verify,
            empty_tree_root=empty_root,
            empty_cex_commitment=empty_cex,
            max_workers=current_app.config.get("MAX_WORKERS", 1),
        )
    except VerificationError as e:
        logger.warning("chain verification failed: %s", e)
        db_set("report.chain", {"verified": False, **serialize_error(e)})
        return _error_response(e)

    logger.info("chain verified: %d batches, root %s",
                report.batches_verified, digest_short(report.final_tree_root))
    data = {"verified": True, **serialize_report(report)}
    db_set("report.chain", data)
    return jsonify(data)


@solvency_bp.route("/reports/<kind>")
def report_page(kind):
    """마지막 검증 결과를 반환한다."""
    if kind not in REPORT_KINDS:
        return jsonify({"error": "unknown_report", "message": kind}), 404
    data = db_get(f"report.{kind}")
    if data is None:
        return jsonify({"error": "no_report", "message": kind}), 404
    return jsonify(data)

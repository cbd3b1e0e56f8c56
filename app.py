import logging
import os

from flask import Flask
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from zkpor.groth16.verifying import groth16_verify, load_verifying_key
from zkpor.solvency.hashing import load_commitment_scheme

from solvency_routes import solvency_bp, init_solvency_bp

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "db.json"


def create_app(db=None, verifying_key=None, zk_verify=None, hasher=None, max_workers=1):
    """검증 서비스 Flask 앱을 만든다.

    Args:
        db: TinyDB 인스턴스 (None이면 ZKPOR_DB 경로 또는 db.json)
        verifying_key: 체인 모드 검증 키 (None이면 ZKPOR_VK_PATH에서 로드)
        zk_verify: ZkVerify 백엔드 (기본값: groth16_verify)
        hasher: CommitmentScheme (None이면 ZKPOR_COMMITMENT_SCHEME의 "module:Class" 또는 FieldSha256Hasher)
        max_workers: 체인 모드 ZkVerify 병렬 작업자 수
    """
    app = Flask(__name__)

    if db is None:
        db = TinyDB(os.environ.get("ZKPOR_DB", DEFAULT_DB_PATH))  # Storage DB

    if verifying_key is None and os.environ.get("ZKPOR_VK_PATH"):
        verifying_key = load_verifying_key(os.environ["ZKPOR_VK_PATH"])
        logger.info("loaded verifying key from %s", os.environ["ZKPOR_VK_PATH"])

    if hasher is None:
        hasher = load_commitment_scheme(os.environ.get("ZKPOR_COMMITMENT_SCHEME"))

    app.config["VERIFYING_KEY"] = verifying_key
    app.config["ZK_VERIFY"] = zk_verify or groth16_verify
    app.config["HASHER"] = hasher
    app.config["MAX_WORKERS"] = max_workers

    init_solvency_bp(db.table("reports"))
    app.register_blueprint(solvency_bp)
    return app


def create_memory_app(**kwargs):
    """메모리 DB를 쓰는 앱 (테스트/데모용)."""
    return create_app(db=TinyDB(storage=MemoryStorage), **kwargs)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=False)

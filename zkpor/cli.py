"""
지급능력 증명 검증기 CLI
========================

실행:
    zkpor-verify                        # 체인 모드 (config/config.json)
    zkpor-verify --user                 # 사용자 모드 (config/user_config.json)
    python -m zkpor.cli --config path/to/config.json -v
    zkpor-verify --hasher mypkg.poseidon:PoseidonScheme

해시 백엔드는 --hasher, 설정 파일의 CommitmentScheme, 기본값(FieldSha256Hasher) 순으로 정한다.

종료 코드: 0 = 검증 성공, 1 = 검증 실패 또는 입력 오류
"""

import argparse
import logging
import sys

from zkpor.solvency.audit import verify_solvency
from zkpor.solvency.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_USER_CONFIG_PATH,
    load_chain_config,
    load_user_config,
)
from zkpor.solvency.errors import ChainVerificationError, SequenceError, VerificationError
from zkpor.solvency.hashing import load_commitment_scheme
from zkpor.solvency.inclusion import verify_user

logger = logging.getLogger("zkpor")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Verify proof-of-solvency batch proofs or a user inclusion proof")
    parser.add_argument("--user", action="store_true", help="verify a single user's inclusion proof")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="chain mode config file")
    parser.add_argument("--user-config", default=DEFAULT_USER_CONFIG_PATH, help="user mode config file")
    parser.add_argument("--hasher", default=None, metavar="MODULE:CLASS",
                        help="CommitmentScheme backend (overrides the config file)")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def run_user(path, hasher_path=None):
    config = load_user_config(path)
    hasher = load_commitment_scheme(hasher_path or config.commitment_scheme)
    result = verify_user(hasher, config.proof, config.asset_count, config.account_tree_depth)
    print(f"merkle leave hash: {result.leaf_hash.hex()}")
    if result.verified:
        print("verify pass!!!")
        return 0
    print("verify failed...")
    return 1


def run_chain(path, hasher_path=None):
    config = load_chain_config(path)
    hasher = load_commitment_scheme(hasher_path or config.commitment_scheme)
    report = verify_solvency(config, hasher=hasher)
    print(f"account merkle tree root is {report.final_tree_root.hex()}")
    print("All proofs verify passed!!!")
    return 0


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.user:
            return run_user(args.user_config, args.hasher)
        return run_chain(args.config, args.hasher)
    except (ChainVerificationError, SequenceError) as e:
        print(f"batch {e.batch_number} failed ({e.kind}): {e}")
        return 1
    except VerificationError as e:
        print(f"verification failed ({e.kind}): {e}")
        return 1
    except OSError as e:
        logger.error("cannot read input: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Sync 진입점

실행 방법:
    python -m sync --token <access_token> [--account-id <uuid>]

토큰은 LEDGERSYNC_ACCESS_TOKEN 환경변수로도 전달할 수 있다.
"""

import argparse
import asyncio
import os
import uuid

from sync.bootstrap import main


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="계좌 원장 실시간 동기화"
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("LEDGERSYNC_ACCESS_TOKEN"),
        help="사용자 액세스 토큰 (기본: LEDGERSYNC_ACCESS_TOKEN)",
    )
    parser.add_argument(
        "--account-id",
        type=uuid.UUID,
        default=None,
        help="동기화할 계좌 ID (기본: 토큰 소유자의 첫 계좌)",
    )
    args = parser.parse_args()
    if not args.token:
        parser.error("--token 또는 LEDGERSYNC_ACCESS_TOKEN이 필요합니다")
    return args


if __name__ == "__main__":
    args = parse_args()
    try:
        asyncio.run(main(args.token, args.account_id))
    except KeyboardInterrupt:
        pass

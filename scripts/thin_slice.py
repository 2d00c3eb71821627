#!/usr/bin/env python3
"""
Thin Slice 검증 스크립트

메모리 내 저장소로 전체 흐름을 관통하는 최소 기능 검증
(외부 서비스 접속 없음)

흐름:
1. 사용자/계좌 준비
2. 두 계좌의 캐시 + Reconciler 시작
3. 100.00 USD 이체
4. 양쪽 캐시가 change feed로 수렴하는지 확인
5. 대변 실패 후 같은 Idempotency-Key로 재전송하여 완료
"""

import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from adapters.mock.ledger_store import InMemoryLedgerStore
from core.domain.errors import LedgerWriteFailedError
from sync.cache import LedgerCache
from sync.reconciler import ChangeFeedReconciler
from web.services.transfer_service import TransferService

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="[%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def wait_for_count(cache: LedgerCache, count: int, timeout: float = 2.0) -> None:
    """캐시 항목 수가 count가 될 때까지 대기"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(cache) != count:
        if loop.time() > deadline:
            raise TimeoutError(f"cache has {len(cache)} entries, expected {count}")
        await asyncio.sleep(0.01)


async def main() -> int:
    """Thin Slice 메인

    Returns:
        종료 코드 (0: 성공, 1: 실패)
    """
    logger.info("=" * 60)
    logger.info("Thin Slice 검증 시작")
    logger.info("=" * 60)

    # Step 1
    logger.info("")
    logger.info("[Step 1] 사용자/계좌 준비")
    store = InMemoryLedgerStore()
    alice = store.add_user("alice@example.com")
    bob = store.add_user("bob@example.com")
    alice_account = store.add_account(alice)
    bob_account = store.add_account(bob)
    token = store.issue_token(alice)
    logger.info(f"  - alice 계좌: {alice_account.id}")
    logger.info(f"  - bob 계좌: {bob_account.id}")

    # Step 2
    logger.info("")
    logger.info("[Step 2] 캐시 + Reconciler 시작")
    alice_cache = LedgerCache(store, alice_account.id)
    bob_cache = LedgerCache(store, bob_account.id)
    alice_sync = ChangeFeedReconciler(store, alice_cache)
    bob_sync = ChangeFeedReconciler(store, bob_cache)

    service = TransferService(store, auth=store, identity=store, timeout=5.0)

    try:
        async with alice_sync, bob_sync:
            await alice_sync.wait_streaming(timeout=2.0)
            await bob_sync.wait_streaming(timeout=2.0)
            logger.info("  - 두 계좌 모두 STREAMING")

            # Step 3
            logger.info("")
            logger.info("[Step 3] 100.00 USD 이체")
            receipt = await service.execute(
                {
                    "sender_account_id": str(alice_account.id),
                    "recipient_email": "bob@example.com",
                    "amount": "100.00",
                    "currency": "USD",
                    "category": "Transfer",
                },
                credential=token,
            )
            logger.info(f"  - 응답: {receipt.to_dict()}")

            # Step 4
            logger.info("")
            logger.info("[Step 4] 캐시 수렴 확인")
            await wait_for_count(alice_cache, 1)
            await wait_for_count(bob_cache, 1)
            logger.info(f"  - alice 잔고: {alice_cache.balance()}")
            logger.info(f"  - bob 잔고: {bob_cache.balance()}")
            assert alice_cache.balance()["USD"] == Decimal("-100.00")
            assert bob_cache.balance()["USD"] == Decimal("100.00")

            # Step 5
            logger.info("")
            logger.info("[Step 5] 대변 실패 후 재전송")
            store.fail_next("insert_transaction", account_id=bob_account.id)
            payload = {
                "sender_account_id": str(alice_account.id),
                "recipient_email": "bob@example.com",
                "amount": "25.50",
                "currency": "USD",
                "category": "Rent",
            }
            try:
                await service.execute(payload, credential=token, idempotency_key="rent-2024-05")
            except LedgerWriteFailedError as e:
                logger.info(f"  - 1차 실패: {e.to_dict()}")

            await service.execute(payload, credential=token, idempotency_key="rent-2024-05")
            await wait_for_count(alice_cache, 2)
            await wait_for_count(bob_cache, 2)
            logger.info(f"  - alice 잔고: {alice_cache.balance()}")
            logger.info(f"  - bob 잔고: {bob_cache.balance()}")
            assert alice_cache.balance()["USD"] == Decimal("-125.50")
            assert bob_cache.balance()["USD"] == Decimal("125.50")

    except (AssertionError, TimeoutError) as e:
        logger.error(f"검증 실패: {e!r}")
        return 1

    logger.info("")
    logger.info("=" * 60)
    logger.info("Thin Slice 검증 완료!")
    logger.info("=" * 60)
    logger.info(f"  - alice 동기화 통계: {alice_sync.get_stats()}")
    logger.info(f"  - bob 동기화 통계: {bob_sync.get_stats()}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

"""
Sync 부트스트랩

사용자 권한 LedgerStore로 계좌 캐시를 만들고
ChangeFeedReconciler로 실시간 동기화를 유지한다.
"""

import asyncio
import logging
import sys
from uuid import UUID

from adapters.errors import LedgerStoreError
from adapters.supabase.store import SupabaseLedgerStore
from core.config.loader import SecretsLoadError, get_settings
from core.constants import VERSION
from core.ledger.models import Transaction
from core.logging import setup_logging
from core.types import FeedState
from sync.cache import LedgerCache
from sync.reconciler import ChangeFeedReconciler

logger = logging.getLogger("sync")


async def resolve_account_id(store: SupabaseLedgerStore, access_token: str) -> UUID | None:
    """토큰 소유자의 가장 먼저 생성된 계좌 ID"""
    user = await store.get_user(access_token)
    accounts = await store.list_accounts(owner_user_id=user.id, limit=1)
    if not accounts:
        return None
    return accounts[0].id


async def main(access_token: str, account_id: UUID | None = None) -> None:
    """Sync 메인 함수

    Args:
        access_token: 사용자 액세스 토큰 (RLS 평가에 사용)
        account_id: 동기화할 계좌 (None이면 토큰 소유자의 첫 계좌)
    """
    setup_logging("sync")

    logger.info("=" * 60)
    logger.info(f"LedgerSync v{VERSION} 시작")
    logger.info("=" * 60)

    # 1. 설정 로드
    try:
        settings = get_settings()
    except SecretsLoadError as e:
        logger.error(f"설정 로드 실패: {e}")
        sys.exit(1)

    async with SupabaseLedgerStore.for_user(settings, access_token) as store:
        # 2. 계좌 결정
        if account_id is None:
            try:
                account_id = await resolve_account_id(store, access_token)
            except LedgerStoreError as e:
                logger.error(f"계좌 조회 실패: {e}")
                sys.exit(1)
            if account_id is None:
                logger.error("토큰 소유자에게 계좌가 없습니다")
                sys.exit(1)

        logger.info(f"Account: {account_id}")

        # 3. 캐시 + 동기화
        async def on_change(transactions: list[Transaction]) -> None:
            logger.info(
                f"캐시 갱신: {len(transactions)}건, 잔고 {cache.balance()}",
            )

        async def on_state_change(state: FeedState) -> None:
            if state == FeedState.STREAMING:
                logger.info("Change feed 수신 중")

        cache = LedgerCache(store, account_id, on_change=on_change)
        reconciler = ChangeFeedReconciler(
            store,
            cache,
            ack_timeout=settings.timeouts.subscribe_ack_sec,
            on_state_change=on_state_change,
        )

        logger.info("동기화 시작 (종료: Ctrl+C)")

        try:
            await reconciler.run()
        except asyncio.CancelledError:
            logger.info("동기화 취소됨")
        finally:
            await reconciler.stop()
            logger.info(f"최종 통계: {reconciler.get_stats()}")

    logger.info("=" * 60)
    logger.info("LedgerSync 정상 종료")
    logger.info("=" * 60)

"""
Change Feed Reconciler

계좌 단위 change feed를 구독하여 LedgerCache를 저장소와 수렴시킨다.

상태 전이:
    DISCONNECTED → SUBSCRIBING → STREAMING → (장애) DISCONNECTED → ...

한 세션의 순서:
1. subscribe(transactions, account_id=eq.X)
2. 구독 확인(ack) 대기 (ack_timeout)
3. 기준선 조회 → cache.replace_all()
4. STREAMING: 수신 이벤트를 cache.apply()로 병합

구독 확인 후 기준선을 조회하므로 조회 중 발생한 변경은 구독 큐에 남아
기준선 적용 뒤에 병합된다. 병합이 멱등이므로 누락/중복이 없다.

장애(연결 끊김, 저장소 에러, 타임아웃)는 DISCONNECTED로 전이한 뒤
지수 백오프(1초 → 30초)로 재구독하며, 매번 전체 재동기화를 수행한다.
디코딩할 수 없는 이벤트는 기록 후 건너뛴다.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from adapters.errors import FeedDisconnectedError, LedgerStoreError
from adapters.interfaces import IChangeFeedSubscription, ILedgerStore, make_account_filter
from core.constants import Defaults, TableNames
from core.domain.events import EventDecodeError, decode_change
from core.types import FeedState
from core.utils.timezone import now_utc
from sync.cache import LedgerCache

logger = logging.getLogger(__name__)


# 콜백 타입 정의
StateChangeCallback = Callable[[FeedState], Awaitable[None]]


class ChangeFeedReconciler:
    """Change feed → LedgerCache 동기화

    Args:
        store: LedgerStore (subscribe/list_transactions 제공)
        cache: 동기화 대상 캐시
        ack_timeout: 구독 확인 대기 시간 (초)
        reconnect_min_delay: 최소 재구독 대기 (초)
        reconnect_max_delay: 최대 재구독 대기 (초)
        on_state_change: 상태 변경 콜백

    사용 예시:
    ```python
    cache = LedgerCache(store, account_id)
    reconciler = ChangeFeedReconciler(store, cache)

    async with reconciler:
        await reconciler.wait_streaming(timeout=10)
        ...
    ```
    """

    # 상수
    RECONNECT_MIN_DELAY = 1  # 최소 재구독 대기 (초)
    RECONNECT_MAX_DELAY = 30  # 최대 재구독 대기 (초)

    def __init__(
        self,
        store: ILedgerStore,
        cache: LedgerCache,
        ack_timeout: float = Defaults.SUBSCRIBE_ACK_TIMEOUT_SEC,
        reconnect_min_delay: float | None = None,
        reconnect_max_delay: float | None = None,
        on_state_change: StateChangeCallback | None = None,
    ):
        self.store = store
        self.cache = cache
        self.ack_timeout = ack_timeout
        self.reconnect_min_delay = reconnect_min_delay or self.RECONNECT_MIN_DELAY
        self.reconnect_max_delay = reconnect_max_delay or self.RECONNECT_MAX_DELAY
        self.on_state_change = on_state_change

        self._state = FeedState.DISCONNECTED
        self._subscription: IChangeFeedSubscription | None = None
        self._streaming = asyncio.Event()

        # 태스크 관리
        self._task: asyncio.Task[None] | None = None
        self._should_run = False

        # 통계
        self._subscribe_count = 0
        self._resync_count = 0
        self._applied_count = 0
        self._duplicate_count = 0
        self._decode_failures = 0
        self._disconnect_count = 0
        self._last_error: str | None = None
        self._last_resync_at: str | None = None

    @property
    def state(self) -> FeedState:
        """현재 구독 상태"""
        return self._state

    @property
    def is_running(self) -> bool:
        """실행 중 여부"""
        return self._task is not None and not self._task.done()

    # -------------------------------------------------------------------------
    # 시작 / 종료
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """백그라운드 동기화 시작"""
        if self.is_running:
            logger.warning("Reconciler already running")
            return

        self._should_run = True
        self._task = asyncio.create_task(self.run())
        logger.info(
            "Reconciler 시작",
            extra={"account_id": str(self.cache.account_id)},
        )

    async def stop(self) -> None:
        """동기화 종료

        구독을 해제하고 DISCONNECTED로 전이한다.
        캐시는 마지막으로 병합된 상태를 유지한다.
        """
        self._should_run = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self._close_subscription()
        await self._set_state(FeedState.DISCONNECTED)
        logger.info(
            "Reconciler 종료",
            extra={"account_id": str(self.cache.account_id)},
        )

    async def wait_streaming(self, timeout: float | None = None) -> None:
        """STREAMING 상태가 될 때까지 대기

        Raises:
            asyncio.TimeoutError: timeout 초과
        """
        await asyncio.wait_for(self._streaming.wait(), timeout)

    # -------------------------------------------------------------------------
    # 메인 루프
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """세션 반복 (장애 시 백오프 후 재구독)

        stop() 또는 태스크 취소로만 종료된다.
        """
        self._should_run = True
        delay = self.reconnect_min_delay

        while self._should_run:
            reached_streaming = False
            try:
                await self._run_session()
                if self._should_run:
                    raise FeedDisconnectedError("change feed ended")
            except asyncio.CancelledError:
                raise
            except (FeedDisconnectedError, LedgerStoreError, asyncio.TimeoutError) as e:
                self._record_disconnect(e)
                logger.warning(
                    f"Change feed 장애: {e!r}",
                    extra={"account_id": str(self.cache.account_id)},
                )
            except Exception as e:
                self._record_disconnect(e)
                logger.exception(
                    f"Change feed 처리 중 예상치 못한 에러: {e!r}",
                    extra={"account_id": str(self.cache.account_id)},
                )
            finally:
                reached_streaming = self._state == FeedState.STREAMING
                await self._close_subscription()
                await self._set_state(FeedState.DISCONNECTED)

            if not self._should_run:
                break

            if reached_streaming:
                # 정상 수신하던 세션이면 백오프 초기화
                delay = self.reconnect_min_delay

            logger.info(
                "Change feed 재구독 대기",
                extra={"delay": delay, "account_id": str(self.cache.account_id)},
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.reconnect_max_delay)

    async def _run_session(self) -> None:
        """구독 → 확인 → 기준선 → 스트리밍"""
        await self._set_state(FeedState.SUBSCRIBING)

        self._subscription = await self.store.subscribe(
            TableNames.TRANSACTIONS,
            make_account_filter(self.cache.account_id),
        )
        self._subscribe_count += 1

        await asyncio.wait_for(
            self._subscription.wait_acknowledged(),
            timeout=self.ack_timeout,
        )

        # 확인 이후에 조회해야 조회 중 변경이 큐에 남는다
        rows = await self.store.list_transactions(self.cache.account_id)
        await self.cache.replace_all(rows)
        self._resync_count += 1
        self._last_resync_at = now_utc().isoformat()

        await self._set_state(FeedState.STREAMING)

        async for payload in self._subscription:
            await self._handle_payload(payload)

    async def _handle_payload(self, payload: dict[str, Any]) -> None:
        """피드 payload 1건 처리 (디코딩 실패는 건너뜀)"""
        try:
            event = decode_change(payload)
        except EventDecodeError as e:
            self._decode_failures += 1
            logger.warning(
                f"Change event 디코딩 실패, 건너뜀: {e}",
                extra={"account_id": str(self.cache.account_id)},
            )
            return

        changed = await self.cache.apply(event)
        if changed:
            self._applied_count += 1
        else:
            self._duplicate_count += 1

        logger.debug(
            f"Change event 병합: {type(event).__name__}",
            extra={"transaction_id": str(event.transaction_id), "changed": changed},
        )

    # -------------------------------------------------------------------------
    # 내부 헬퍼
    # -------------------------------------------------------------------------

    def _record_disconnect(self, error: BaseException) -> None:
        self._disconnect_count += 1
        self._last_error = repr(error)

    async def _close_subscription(self) -> None:
        subscription = self._subscription
        self._subscription = None
        if subscription is None:
            return
        try:
            await subscription.close()
        except (FeedDisconnectedError, LedgerStoreError, OSError) as e:
            logger.debug("구독 해제 중 에러", extra={"error": str(e)})

    async def _set_state(self, new_state: FeedState) -> None:
        """상태 변경 및 콜백 호출"""
        old_state = self._state
        self._state = new_state

        if new_state == FeedState.STREAMING:
            self._streaming.set()
        else:
            self._streaming.clear()

        if old_state != new_state:
            logger.info(
                "Change feed 상태 변경",
                extra={"old_state": old_state.value, "new_state": new_state.value},
            )

            if self.on_state_change is not None:
                try:
                    await self.on_state_change(new_state)
                except Exception as e:
                    logger.error(
                        "상태 변경 콜백 에러",
                        extra={"error": str(e)},
                    )

    def get_stats(self) -> dict[str, Any]:
        """동기화 통계"""
        return {
            "state": self._state.value,
            "account_id": str(self.cache.account_id),
            "cached_transactions": len(self.cache),
            "subscribe_count": self._subscribe_count,
            "resync_count": self._resync_count,
            "applied_count": self._applied_count,
            "duplicate_count": self._duplicate_count,
            "decode_failures": self._decode_failures,
            "disconnect_count": self._disconnect_count,
            "last_error": self._last_error,
            "last_resync_at": self._last_resync_at,
        }

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "ChangeFeedReconciler":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

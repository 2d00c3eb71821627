"""
LedgerCache

한 계좌의 원장 항목을 메모리에 미러링하는 클라이언트 측 캐시.

두 경로로 갱신된다:
- 로컬 CRUD: 저장소에 먼저 쓰고(write-through) 성공하면 낙관적으로 병합
- change feed: ChangeFeedReconciler가 수신 이벤트를 apply()로 병합

병합 규칙 (id 기준, 멱등, 순서 무관):
- Insert: 있으면 교체, 없으면 추가
- Update: 있으면 제자리 교체, 없으면 추가
- Delete: 있으면 제거, 없으면 무시

로컬 쓰기와 같은 변경이 피드로 다시 들어와도 결과는 같다.
모든 변경은 인스턴스당 하나의 asyncio.Lock 아래에서 수행된다.
"""

import asyncio
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, assert_never
from uuid import UUID

from adapters.interfaces import ILedgerStore
from core.domain.events import ChangeEvent, DeleteEvent, InsertEvent, UpdateEvent
from core.ledger.models import Transaction, TransferReceipt, TransferRequest
from sync.transfer_client import TransferClient

logger = logging.getLogger(__name__)


# 콜백 타입 정의 (변경 후 스냅샷 전달)
ChangeCallback = Callable[[list[Transaction]], Awaitable[None]]


class LedgerCache:
    """계좌 원장 캐시

    Args:
        store: LedgerStore (사용자 권한으로 생성된 것)
        account_id: 미러링할 계좌 ID
        on_change: 변경 후 호출되는 콜백 (UI 등 관찰자)

    사용 예시:
    ```python
    cache = LedgerCache(store, account_id, on_change=render)
    await cache.fetch_transactions()

    await cache.insert_transaction(tx)
    print(cache.balance())
    ```
    """

    def __init__(
        self,
        store: ILedgerStore,
        account_id: UUID,
        on_change: ChangeCallback | None = None,
    ):
        self.store = store
        self.account_id = account_id
        self.on_change = on_change

        # id -> Transaction (도착 순서 유지)
        self._items: dict[UUID, Transaction] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    @property
    def transactions(self) -> list[Transaction]:
        """원장 항목 목록 (도착 순서)"""
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, transaction_id: object) -> bool:
        return transaction_id in self._items

    def get(self, transaction_id: UUID) -> Transaction | None:
        """ID로 항목 조회"""
        return self._items.get(transaction_id)

    def balance(self) -> dict[str, Decimal]:
        """통화별 잔고 (CREDIT 합 - DEBIT 합)

        통화 변환은 하지 않는다.
        """
        totals: dict[str, Decimal] = {}
        for tx in self._items.values():
            totals[tx.currency] = totals.get(tx.currency, Decimal("0")) + tx.signed_amount
        return totals

    # -------------------------------------------------------------------------
    # 병합
    # -------------------------------------------------------------------------

    def _merge(self, event: ChangeEvent) -> bool:
        """이벤트 병합 (잠금 보유 상태에서 호출)

        Returns:
            상태가 바뀌었으면 True
        """
        if isinstance(event, (InsertEvent, UpdateEvent)):
            record = event.record
            if record.account_id != self.account_id:
                # 다른 계좌로 옮겨진 항목은 이 계좌에서 삭제로 처리
                if self._items.pop(record.id, None) is not None:
                    logger.info(
                        "다른 계좌로 이동된 항목 제거",
                        extra={"transaction_id": str(record.id), "account_id": str(record.account_id)},
                    )
                    return True
                logger.warning(
                    "다른 계좌의 이벤트 무시",
                    extra={"transaction_id": str(record.id), "account_id": str(record.account_id)},
                )
                return False
            if self._items.get(record.id) == record:
                return False
            # dict 재할당은 기존 위치를 유지한다
            self._items[record.id] = record
            return True
        elif isinstance(event, DeleteEvent):
            return self._items.pop(event.old_record.id, None) is not None
        else:
            assert_never(event)

    async def apply(self, event: ChangeEvent) -> bool:
        """ChangeEvent 병합

        Returns:
            상태가 바뀌었으면 True (중복 전달이면 False)
        """
        async with self._lock:
            changed = self._merge(event)

        if changed:
            await self._notify()
        return changed

    async def replace_all(self, rows: Iterable[Transaction]) -> None:
        """전체 교체 (기준선 설정 / 재동기화)"""
        async with self._lock:
            self._items = {
                row.id: row for row in rows if row.account_id == self.account_id
            }
            count = len(self._items)

        logger.info(
            f"캐시 재설정: {count}건",
            extra={"account_id": str(self.account_id)},
        )
        await self._notify()

    async def _notify(self) -> None:
        if self.on_change is None:
            return
        try:
            await self.on_change(self.transactions)
        except Exception as e:
            logger.error("변경 콜백 에러", extra={"error": str(e)})

    # -------------------------------------------------------------------------
    # 로컬 CRUD (write-through)
    # -------------------------------------------------------------------------

    async def fetch_transactions(self) -> list[Transaction]:
        """저장소에서 전체 조회 후 캐시 교체

        Raises:
            LedgerStoreError: 조회 실패 (캐시는 변경되지 않음)
        """
        rows = await self.store.list_transactions(self.account_id)
        await self.replace_all(rows)
        return self.transactions

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """항목 추가 (account_id는 이 캐시의 계좌로 고정)

        Raises:
            LedgerStoreError: 쓰기 실패 (캐시는 변경되지 않음)
        """
        transaction = transaction.with_account(self.account_id)
        stored = await self.store.insert_transaction(transaction)
        await self.apply(InsertEvent(record=stored))
        return stored

    async def update_transaction(
        self,
        transaction: Transaction,
        transaction_id: UUID,
    ) -> Transaction:
        """항목 전체 교체

        Raises:
            RecordNotFoundError: 대상 없음
            LedgerStoreError: 쓰기 실패 (캐시는 변경되지 않음)
        """
        transaction = transaction.with_account(self.account_id)
        stored = await self.store.update_transaction(transaction_id, transaction)
        await self.apply(UpdateEvent(record=stored))
        return stored

    async def delete_transaction(self, transaction: Transaction) -> None:
        """항목 삭제

        Raises:
            LedgerStoreError: 삭제 실패 (캐시는 변경되지 않음)
        """
        await self.store.delete_transaction(transaction.id)
        await self.apply(DeleteEvent(old_record=transaction))

    # -------------------------------------------------------------------------
    # 이체
    # -------------------------------------------------------------------------

    async def make_transfer(
        self,
        request: TransferRequest,
        client: TransferClient,
        idempotency_key: str | None = None,
    ) -> TransferReceipt:
        """이 계좌에서 이체 실행

        송신 계좌는 항상 이 캐시의 계좌로 설정된다.
        결과 차변 항목은 change feed를 통해 캐시에 반영된다.

        Raises:
            TransferRejectedError: 서버가 이체를 거부
        """
        if request.sender_account_id != self.account_id:
            request = replace(request, sender_account_id=self.account_id)
        return await client.transfer(request, idempotency_key=idempotency_key)

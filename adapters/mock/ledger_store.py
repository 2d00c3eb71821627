"""
Mock LedgerStore

테스트/로컬 실행용 메모리 내 LedgerStore.
IAuthProvider, IIdentityLookup, ILedgerStore Protocol 준수.

- 액세스 토큰: PyJWT(HS256)로 발급/검증
- change feed: 필터(account_id=eq.X)에 맞는 구독에 payload 전달
- 장애 주입: 특정 호출 실패/지연, 피드 연결 끊김
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import jwt

from adapters.errors import (
    DuplicateRecordError,
    FeedDisconnectedError,
    InvalidCredentialError,
    LedgerStoreError,
    RecordNotFoundError,
)
from adapters.interfaces import parse_eq_filter
from core.domain.events import ChangeEvent, DeleteEvent, InsertEvent, UpdateEvent, encode_change
from core.ledger.models import Account, AuthUser, Transaction
from core.types import AccountStatus
from core.utils.timezone import now_utc

logger = logging.getLogger(__name__)


# 큐 종료 표시
_CLOSED = object()

# 토큰 서명 알고리즘
JWT_ALGORITHM = "HS256"


@dataclass
class PendingFault:
    """예약된 장애 (한 번 발생 후 제거)"""

    operation: str
    error: Exception
    account_id: uuid.UUID | None = None


@dataclass
class MockLedgerState:
    """Mock 상태 (메모리 내 저장)"""

    # 사용자 (user_id -> email)
    users: dict[uuid.UUID, str] = field(default_factory=dict)

    # 계좌 (account_id -> Account)
    accounts: dict[uuid.UUID, Account] = field(default_factory=dict)

    # 원장 항목 (transaction_id -> Transaction, 삽입 순서 유지)
    transactions: dict[uuid.UUID, Transaction] = field(default_factory=dict)

    # 쓰기 기록 (operation, transaction_id)
    write_log: list[tuple[str, uuid.UUID]] = field(default_factory=list)

    # 시뮬레이션 옵션
    faults: list[PendingFault] = field(default_factory=list)
    delays: dict[str, float] = field(default_factory=dict)


class MockFeedSubscription:
    """Mock change feed 구독 (IChangeFeedSubscription 구현)"""

    def __init__(
        self,
        store: "InMemoryLedgerStore",
        table: str,
        column: str,
        value: str,
    ):
        self._store = store
        self.table = table
        self.column = column
        self.value = value

        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._acknowledged = asyncio.Event()
        self._failure: FeedDisconnectedError | None = None
        self._closed = False

    @property
    def is_active(self) -> bool:
        """수신 가능 여부"""
        return not self._closed and self._failure is None

    def matches(self, table: str, record: dict[str, Any]) -> bool:
        """필터 일치 여부"""
        return table == self.table and str(record.get(self.column)) == self.value

    def acknowledge(self) -> None:
        """구독 확인"""
        self._acknowledged.set()

    def deliver(self, payload: dict[str, Any]) -> None:
        """payload 전달"""
        if self.is_active:
            self._queue.put_nowait(payload)

    def disconnect(self, reason: str = "mock disconnect") -> None:
        """연결 끊김 시뮬레이션"""
        if not self.is_active:
            return
        self._failure = FeedDisconnectedError(reason)
        self._queue.put_nowait(self._failure)

    async def wait_acknowledged(self) -> None:
        if self._failure is not None:
            raise self._failure

        ack_task = asyncio.create_task(self._acknowledged.wait())
        try:
            while not ack_task.done():
                await asyncio.wait({ack_task}, timeout=0.01)
                if self._failure is not None:
                    raise self._failure
        finally:
            if not ack_task.done():
                ack_task.cancel()

    def __aiter__(self) -> "MockFeedSubscription":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, FeedDisconnectedError):
            raise item
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store._remove_subscription(self)
        self._queue.put_nowait(_CLOSED)


class InMemoryLedgerStore:
    """메모리 내 LedgerStore

    사용 예시:
    ```python
    store = InMemoryLedgerStore()

    alice = store.add_user("alice@example.com")
    account = store.add_account(alice)
    token = store.issue_token(alice)

    # 장애 주입
    store.fail_next("insert_transaction", account_id=account.id)
    store.set_delay("find_user_ids_by_email", 5.0)
    store.drop_feeds()
    ```

    Args:
        state: 초기 상태 (None이면 빈 상태)
        jwt_secret: 토큰 서명 키
        auto_ack: True면 subscribe 즉시 구독 확인
    """

    def __init__(
        self,
        state: MockLedgerState | None = None,
        jwt_secret: str = "mock-jwt-secret-for-local-testing-only",
        auto_ack: bool = True,
    ):
        self.state = state or MockLedgerState()
        self.jwt_secret = jwt_secret
        self.auto_ack = auto_ack
        self._subscriptions: list[MockFeedSubscription] = []

    # -------------------------------------------------------------------------
    # 상태 조작 메서드 (테스트용)
    # -------------------------------------------------------------------------

    def add_user(self, email: str, user_id: uuid.UUID | None = None) -> uuid.UUID:
        """사용자 추가"""
        user_id = user_id or uuid.uuid4()
        self.state.users[user_id] = email
        return user_id

    def add_account(
        self,
        user_id: uuid.UUID,
        created_at: datetime | None = None,
        status: AccountStatus = AccountStatus.OPEN,
        account_id: uuid.UUID | None = None,
    ) -> Account:
        """계좌 추가"""
        account = Account(
            id=account_id or uuid.uuid4(),
            user_id=user_id,
            created_at=created_at or now_utc(),
            status=status,
        )
        self.state.accounts[account.id] = account
        return account

    def seed_transaction(self, transaction: Transaction) -> None:
        """원장 항목 직접 추가 (피드 알림 없음)"""
        self.state.transactions[transaction.id] = transaction

    def issue_token(
        self,
        user_id: uuid.UUID,
        expires_in: timedelta = timedelta(hours=1),
    ) -> str:
        """액세스 토큰 발급"""
        payload = {
            "sub": str(user_id),
            "email": self.state.users.get(user_id),
            "role": "authenticated",
            "exp": now_utc() + expires_in,
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=JWT_ALGORITHM)

    def fail_next(
        self,
        operation: str,
        error: Exception | None = None,
        account_id: uuid.UUID | None = None,
    ) -> None:
        """다음 호출 실패 설정

        Args:
            operation: 메서드 이름 (예: insert_transaction)
            error: 발생시킬 예외 (기본: LedgerStoreError)
            account_id: 특정 계좌 대상 호출에만 적용
        """
        self.state.faults.append(
            PendingFault(
                operation=operation,
                error=error or LedgerStoreError(f"mock {operation} failure", 500),
                account_id=account_id,
            )
        )

    def set_delay(self, operation: str, seconds: float) -> None:
        """호출 지연 설정 (타임아웃 시뮬레이션)"""
        self.state.delays[operation] = seconds

    def clear_faults(self) -> None:
        """예약된 장애/지연 제거"""
        self.state.faults.clear()
        self.state.delays.clear()

    def drop_feeds(self) -> None:
        """모든 구독의 연결 끊김 시뮬레이션"""
        for subscription in list(self._subscriptions):
            subscription.disconnect()

    def acknowledge_all(self) -> None:
        """대기 중인 모든 구독 확인 (auto_ack=False일 때)"""
        for subscription in self._subscriptions:
            subscription.acknowledge()

    def inject_payload(self, table: str, account_id: uuid.UUID, payload: dict[str, Any]) -> None:
        """원문 payload 직접 전달 (잘못된 이벤트 시뮬레이션)"""
        for subscription in list(self._subscriptions):
            if subscription.matches(table, {"account_id": str(account_id)}):
                subscription.deliver(payload)

    def publish(self, event: ChangeEvent) -> None:
        """ChangeEvent를 필터 일치 구독에 전달 (중복 전달 시뮬레이션용으로도 사용)"""
        if isinstance(event, DeleteEvent):
            record = event.old_record.to_record()
        else:
            record = event.record.to_record()

        payload = encode_change(event)
        for subscription in list(self._subscriptions):
            if subscription.matches("transactions", record):
                subscription.deliver(payload)

    @property
    def active_subscriptions(self) -> int:
        """활성 구독 수"""
        return sum(1 for s in self._subscriptions if s.is_active)

    def transactions_for(self, account_id: uuid.UUID) -> list[Transaction]:
        """계좌의 원장 항목 (동기 조회, 검증용)"""
        return [t for t in self.state.transactions.values() if t.account_id == account_id]

    # -------------------------------------------------------------------------
    # 내부 헬퍼
    # -------------------------------------------------------------------------

    async def _enter(self, operation: str, account_id: uuid.UUID | None = None) -> None:
        """지연/장애 적용"""
        delay = self.state.delays.get(operation)
        if delay:
            await asyncio.sleep(delay)

        for fault in self.state.faults:
            if fault.operation != operation:
                continue
            if fault.account_id is not None and fault.account_id != account_id:
                continue
            self.state.faults.remove(fault)
            logger.debug("mock 장애 발생", extra={"operation": operation})
            raise fault.error

    def _remove_subscription(self, subscription: MockFeedSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    # -------------------------------------------------------------------------
    # 인증 / 사용자 조회
    # -------------------------------------------------------------------------

    async def get_user(self, access_token: str) -> AuthUser:
        """토큰 검증 후 사용자 반환"""
        await self._enter("get_user")

        try:
            claims = jwt.decode(access_token, self.jwt_secret, algorithms=[JWT_ALGORITHM])
            user_id = uuid.UUID(claims["sub"])
        except (jwt.PyJWTError, KeyError, ValueError) as e:
            raise InvalidCredentialError(f"invalid token: {e}", 401) from e

        if user_id not in self.state.users:
            raise InvalidCredentialError("user not found", 401)

        return AuthUser(id=user_id, email=self.state.users[user_id])

    async def find_user_ids_by_email(self, email: str) -> list[uuid.UUID]:
        await self._enter("find_user_ids_by_email")
        target = email.strip().lower()
        return [uid for uid, e in self.state.users.items() if e.lower() == target]

    # -------------------------------------------------------------------------
    # 계좌 조회
    # -------------------------------------------------------------------------

    async def list_accounts(
        self,
        owner_user_id: uuid.UUID | None = None,
        limit: int | None = None,
    ) -> list[Account]:
        await self._enter("list_accounts")
        accounts = [
            a for a in self.state.accounts.values()
            if owner_user_id is None or a.user_id == owner_user_id
        ]
        # 안정 정렬: created_at 동률이면 삽입 순서 유지
        accounts.sort(key=lambda a: a.created_at)
        if limit is not None:
            accounts = accounts[:limit]
        return accounts

    # -------------------------------------------------------------------------
    # 원장 항목
    # -------------------------------------------------------------------------

    async def list_transactions(self, account_id: uuid.UUID) -> list[Transaction]:
        await self._enter("list_transactions", account_id)
        return self.transactions_for(account_id)

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        await self._enter("insert_transaction", transaction.account_id)

        if transaction.id in self.state.transactions:
            raise DuplicateRecordError(
                f"duplicate key value violates unique constraint: {transaction.id}",
                409,
                "23505",
            )

        self.state.transactions[transaction.id] = transaction
        self.state.write_log.append(("insert", transaction.id))
        self.publish(InsertEvent(record=transaction))
        return transaction

    async def update_transaction(
        self,
        transaction_id: uuid.UUID,
        transaction: Transaction,
    ) -> Transaction:
        await self._enter("update_transaction", transaction.account_id)

        if transaction_id not in self.state.transactions:
            raise RecordNotFoundError(f"transaction {transaction_id} not found", 404)

        if transaction.id != transaction_id:
            transaction = Transaction(
                id=transaction_id,
                account_id=transaction.account_id,
                type=transaction.type,
                amount=transaction.amount,
                currency=transaction.currency,
                category=transaction.category,
                description=transaction.description,
                date=transaction.date,
            )

        self.state.transactions[transaction_id] = transaction
        self.state.write_log.append(("update", transaction_id))
        self.publish(UpdateEvent(record=transaction))
        return transaction

    async def delete_transaction(self, transaction_id: uuid.UUID) -> None:
        existing = self.state.transactions.get(transaction_id)
        await self._enter(
            "delete_transaction",
            existing.account_id if existing else None,
        )

        if existing is None:
            return

        del self.state.transactions[transaction_id]
        self.state.write_log.append(("delete", transaction_id))
        self.publish(DeleteEvent(old_record=existing))

    # -------------------------------------------------------------------------
    # Change feed
    # -------------------------------------------------------------------------

    async def subscribe(self, table: str, filter: str) -> MockFeedSubscription:
        await self._enter("subscribe")

        column, value = parse_eq_filter(filter)
        subscription = MockFeedSubscription(self, table, column, value)
        self._subscriptions.append(subscription)

        if self.auto_ack:
            subscription.acknowledge()
        return subscription

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """열린 구독 해제 (저장된 데이터는 유지)"""
        for subscription in list(self._subscriptions):
            await subscription.close()

    async def __aenter__(self) -> "InMemoryLedgerStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        pass

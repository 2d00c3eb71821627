"""
LedgerCache 테스트

병합 규칙(멱등, 순서 무관), write-through CRUD, 관찰자 콜백
"""

import uuid
from dataclasses import replace
from decimal import Decimal
from typing import Callable
from unittest.mock import AsyncMock

import pytest

from adapters.errors import LedgerStoreError, RecordNotFoundError
from adapters.mock.ledger_store import InMemoryLedgerStore
from core.domain.events import DeleteEvent, InsertEvent, UpdateEvent
from core.ledger.models import Transaction, TransferReceipt, TransferRequest
from core.types import TransactionType
from sync.cache import LedgerCache
from sync.transfer_client import TransferClient


@pytest.fixture
def cache(store: InMemoryLedgerStore, account_id: uuid.UUID) -> LedgerCache:
    return LedgerCache(store, account_id)


class TestApply:
    """ChangeEvent 병합"""

    @pytest.mark.asyncio
    async def test_insert_adds(self, cache: LedgerCache, make_transaction: Callable[..., Transaction]) -> None:
        tx = make_transaction()

        assert await cache.apply(InsertEvent(record=tx)) is True
        assert cache.get(tx.id) == tx
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_duplicate_insert_is_noop(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        tx = make_transaction()
        await cache.apply(InsertEvent(record=tx))

        assert await cache.apply(InsertEvent(record=tx)) is False
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_update_replaces_in_place(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        first = make_transaction(description="first")
        second = make_transaction(description="second")
        await cache.apply(InsertEvent(record=first))
        await cache.apply(InsertEvent(record=second))

        edited = replace(first, amount=Decimal("99.00"))
        assert await cache.apply(UpdateEvent(record=edited)) is True

        # 위치는 유지된다
        assert [t.id for t in cache.transactions] == [first.id, second.id]
        assert cache.get(first.id).amount == Decimal("99.00")

    @pytest.mark.asyncio
    async def test_update_of_unknown_id_adds(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        tx = make_transaction()

        assert await cache.apply(UpdateEvent(record=tx)) is True
        assert tx.id in cache

    @pytest.mark.asyncio
    async def test_delete_removes(self, cache: LedgerCache, make_transaction: Callable[..., Transaction]) -> None:
        tx = make_transaction()
        await cache.apply(InsertEvent(record=tx))

        assert await cache.apply(DeleteEvent(old_record=tx)) is True
        assert tx.id not in cache

    @pytest.mark.asyncio
    async def test_delete_of_absent_id_is_noop(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        kept = make_transaction()
        await cache.apply(InsertEvent(record=kept))

        assert await cache.apply(DeleteEvent(old_record=make_transaction())) is False
        assert cache.transactions == [kept]

    @pytest.mark.asyncio
    async def test_other_account_ignored(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        foreign = make_transaction(account=uuid.uuid4())

        assert await cache.apply(InsertEvent(record=foreign)) is False
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_update_moving_to_other_account_removes(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        kept = make_transaction()
        moved = make_transaction()
        await cache.apply(InsertEvent(record=kept))
        await cache.apply(InsertEvent(record=moved))

        assert await cache.apply(UpdateEvent(record=moved.with_account(uuid.uuid4()))) is True
        assert cache.transactions == [kept]
        assert cache.balance() == {"USD": kept.signed_amount}

    @pytest.mark.asyncio
    async def test_order_independent(
        self, store: InMemoryLedgerStore, account_id: uuid.UUID, make_transaction: Callable[..., Transaction]
    ) -> None:
        a = make_transaction(amount="1.00")
        b = make_transaction(amount="2.00", type=TransactionType.DEBIT)
        c = make_transaction(amount="4.00")
        events = [InsertEvent(record=a), UpdateEvent(record=b), InsertEvent(record=c), DeleteEvent(old_record=c)]

        forward = LedgerCache(store, account_id)
        backward = LedgerCache(store, account_id)
        for event in events:
            await forward.apply(event)
        # 같은 id에 대한 insert → delete 순서만 유지
        for event in [events[1], events[2], events[3], events[0]]:
            await backward.apply(event)

        assert {t.id for t in forward.transactions} == {a.id, b.id}
        assert {t.id for t in backward.transactions} == {a.id, b.id}
        assert forward.balance() == backward.balance() == {"USD": Decimal("-1.00")}


class TestBalance:
    """통화별 잔고"""

    @pytest.mark.asyncio
    async def test_balance_by_currency(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        await cache.replace_all(
            [
                make_transaction(amount="100.00"),
                make_transaction(amount="30.25", type=TransactionType.DEBIT),
                make_transaction(amount="5", currency="EUR"),
            ]
        )

        assert cache.balance() == {"USD": Decimal("69.75"), "EUR": Decimal("5")}

    def test_empty(self, cache: LedgerCache) -> None:
        assert cache.balance() == {}


class TestReplaceAll:
    """기준선 교체"""

    @pytest.mark.asyncio
    async def test_filters_other_accounts(
        self, cache: LedgerCache, make_transaction: Callable[..., Transaction]
    ) -> None:
        mine = make_transaction()
        await cache.apply(InsertEvent(record=make_transaction()))

        await cache.replace_all([mine, make_transaction(account=uuid.uuid4())])

        assert cache.transactions == [mine]


class TestObserver:
    """on_change 콜백"""

    @pytest.mark.asyncio
    async def test_called_only_on_change(
        self, store: InMemoryLedgerStore, account_id: uuid.UUID, make_transaction: Callable[..., Transaction]
    ) -> None:
        snapshots: list[list[Transaction]] = []

        async def on_change(items: list[Transaction]) -> None:
            snapshots.append(items)

        cache = LedgerCache(store, account_id, on_change=on_change)
        tx = make_transaction()
        await cache.apply(InsertEvent(record=tx))
        await cache.apply(InsertEvent(record=tx))

        assert snapshots == [[tx]]

    @pytest.mark.asyncio
    async def test_callback_error_does_not_propagate(
        self, store: InMemoryLedgerStore, account_id: uuid.UUID, make_transaction: Callable[..., Transaction]
    ) -> None:
        on_change = AsyncMock(side_effect=RuntimeError("render failed"))
        cache = LedgerCache(store, account_id, on_change=on_change)

        assert await cache.apply(InsertEvent(record=make_transaction())) is True
        on_change.assert_awaited_once()


class TestWriteThrough:
    """로컬 CRUD"""

    @pytest.mark.asyncio
    async def test_fetch_transactions(
        self,
        store: InMemoryLedgerStore,
        cache: LedgerCache,
        make_transaction: Callable[..., Transaction],
    ) -> None:
        tx = make_transaction()
        store.seed_transaction(tx)
        store.seed_transaction(make_transaction(account=uuid.uuid4()))

        assert await cache.fetch_transactions() == [tx]

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_cache(
        self,
        store: InMemoryLedgerStore,
        cache: LedgerCache,
        make_transaction: Callable[..., Transaction],
    ) -> None:
        tx = make_transaction()
        await cache.apply(InsertEvent(record=tx))
        store.fail_next("list_transactions")

        with pytest.raises(LedgerStoreError):
            await cache.fetch_transactions()
        assert cache.transactions == [tx]

    @pytest.mark.asyncio
    async def test_insert_forces_account(
        self,
        store: InMemoryLedgerStore,
        cache: LedgerCache,
        account_id: uuid.UUID,
        make_transaction: Callable[..., Transaction],
    ) -> None:
        tx = make_transaction(account=uuid.uuid4())

        stored = await cache.insert_transaction(tx)

        assert stored.account_id == account_id
        assert store.transactions_for(account_id) == [stored]
        assert cache.get(tx.id) == stored

    @pytest.mark.asyncio
    async def test_insert_failure_leaves_cache_unchanged(
        self,
        store: InMemoryLedgerStore,
        cache: LedgerCache,
        make_transaction: Callable[..., Transaction],
    ) -> None:
        store.fail_next("insert_transaction")

        with pytest.raises(LedgerStoreError):
            await cache.insert_transaction(make_transaction())
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_update(
        self,
        store: InMemoryLedgerStore,
        cache: LedgerCache,
        make_transaction: Callable[..., Transaction],
    ) -> None:
        tx = await cache.insert_transaction(make_transaction())
        edited = replace(tx, description="Dinner")

        await cache.update_transaction(edited, tx.id)

        assert cache.get(tx.id).description == "Dinner"
        assert store.state.transactions[tx.id].description == "Dinner"

    @pytest.mark.asyncio
    async def test_update_missing(self, cache: LedgerCache, make_transaction: Callable[..., Transaction]) -> None:
        tx = make_transaction()

        with pytest.raises(RecordNotFoundError):
            await cache.update_transaction(tx, tx.id)
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_delete(
        self,
        store: InMemoryLedgerStore,
        cache: LedgerCache,
        make_transaction: Callable[..., Transaction],
    ) -> None:
        tx = await cache.insert_transaction(make_transaction())

        await cache.delete_transaction(tx)

        assert len(cache) == 0
        assert tx.id not in store.state.transactions


class TestMakeTransfer:
    """이체 위임"""

    @pytest.mark.asyncio
    async def test_sender_is_cache_account(
        self, cache: LedgerCache, account_id: uuid.UUID
    ) -> None:
        client = AsyncMock(spec=TransferClient)
        client.transfer.return_value = TransferReceipt(
            amount=Decimal("10"), currency="USD", recipient_email="bob@example.com"
        )
        request = TransferRequest(
            sender_account_id=uuid.uuid4(),
            recipient_email="bob@example.com",
            amount=Decimal("10"),
            currency="USD",
            category="Transfer",
        )

        receipt = await cache.make_transfer(request, client, idempotency_key="k-1")

        assert receipt.recipient_email == "bob@example.com"
        sent, = client.transfer.call_args.args
        assert sent.sender_account_id == account_id
        assert client.transfer.call_args.kwargs == {"idempotency_key": "k-1"}

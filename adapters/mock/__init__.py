"""
Mock 어댑터

테스트/로컬 실행용 메모리 내 LedgerStore.
Protocol 준수하여 Supabase 구현체와 교체 가능.
"""

from adapters.mock.ledger_store import (
    InMemoryLedgerStore,
    MockFeedSubscription,
    MockLedgerState,
)

__all__ = [
    "InMemoryLedgerStore",
    "MockFeedSubscription",
    "MockLedgerState",
]

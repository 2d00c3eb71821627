"""
어댑터 레이어

외부 LedgerStore(Supabase 등)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.errors import (
    DuplicateRecordError,
    FeedDisconnectedError,
    InvalidCredentialError,
    LedgerStoreError,
    LedgerStoreTimeoutError,
    RecordNotFoundError,
)
from adapters.interfaces import (
    IAuthProvider,
    IChangeFeedSubscription,
    IIdentityLookup,
    ILedgerStore,
)

__all__ = [
    # Interfaces
    "IAuthProvider",
    "IChangeFeedSubscription",
    "IIdentityLookup",
    "ILedgerStore",
    # Errors
    "DuplicateRecordError",
    "FeedDisconnectedError",
    "InvalidCredentialError",
    "LedgerStoreError",
    "LedgerStoreTimeoutError",
    "RecordNotFoundError",
]

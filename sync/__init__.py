"""
Sync 패키지

클라이언트 측 계좌 원장 캐시와 change feed 동기화.
"""

from sync.cache import LedgerCache
from sync.reconciler import ChangeFeedReconciler
from sync.transfer_client import TransferClient, TransferRejectedError

__all__ = [
    "ChangeFeedReconciler",
    "LedgerCache",
    "TransferClient",
    "TransferRejectedError",
]

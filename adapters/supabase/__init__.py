"""
Supabase 어댑터

PostgREST/GoTrue REST 클라이언트, Realtime change feed 클라이언트,
둘을 묶은 SupabaseLedgerStore.
"""

from adapters.supabase.realtime_client import (
    RealtimeSubscription,
    SupabaseRealtimeClient,
    to_feed_payload,
)
from adapters.supabase.rest_client import SupabaseRestClient
from adapters.supabase.store import SupabaseLedgerStore

__all__ = [
    "RealtimeSubscription",
    "SupabaseRealtimeClient",
    "SupabaseRestClient",
    "SupabaseLedgerStore",
    "to_feed_payload",
]

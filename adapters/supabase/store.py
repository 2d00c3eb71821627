"""
Supabase LedgerStore

REST 클라이언트와 Realtime 클라이언트를 묶어 ILedgerStore를 구현.
요청/캐시 단위로 생성하여 주입한다 (전역 공유 없음).
"""

from typing import Any
from uuid import UUID

from adapters.supabase.realtime_client import RealtimeSubscription, SupabaseRealtimeClient
from adapters.supabase.rest_client import SupabaseRestClient
from core.config.loader import Settings
from core.ledger.models import Account, AuthUser, Transaction


class SupabaseLedgerStore:
    """Supabase 기반 LedgerStore

    Args:
        rest: REST 클라이언트
        realtime: Realtime 클라이언트 (None이면 subscribe 불가)
    """

    def __init__(
        self,
        rest: SupabaseRestClient,
        realtime: SupabaseRealtimeClient | None = None,
    ):
        self.rest = rest
        self.realtime = realtime

    @classmethod
    def for_service(cls, settings: Settings) -> "SupabaseLedgerStore":
        """서비스 권한(service_role) 저장소 생성 (TransferService용)"""
        rest = SupabaseRestClient(
            base_url=settings.supabase.url,
            api_key=settings.supabase.service_role_key,
            timeout=settings.timeouts.request_sec,
        )
        return cls(rest=rest)

    @classmethod
    def for_user(cls, settings: Settings, access_token: str) -> "SupabaseLedgerStore":
        """사용자 권한 저장소 생성 (LedgerCache/Reconciler용, RLS 적용)"""
        rest = SupabaseRestClient(
            base_url=settings.supabase.url,
            api_key=settings.supabase.anon_key,
            access_token=access_token,
            timeout=settings.timeouts.request_sec,
        )
        realtime = SupabaseRealtimeClient(
            ws_base_url=settings.realtime_url,
            api_key=settings.supabase.anon_key,
            access_token=access_token,
        )
        return cls(rest=rest, realtime=realtime)

    async def get_user(self, access_token: str) -> AuthUser:
        return await self.rest.get_user(access_token)

    async def find_user_ids_by_email(self, email: str) -> list[UUID]:
        return await self.rest.find_user_ids_by_email(email)

    async def list_accounts(
        self,
        owner_user_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[Account]:
        return await self.rest.list_accounts(owner_user_id, limit)

    async def list_transactions(self, account_id: UUID) -> list[Transaction]:
        return await self.rest.list_transactions(account_id)

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        return await self.rest.insert_transaction(transaction)

    async def update_transaction(
        self,
        transaction_id: UUID,
        transaction: Transaction,
    ) -> Transaction:
        return await self.rest.update_transaction(transaction_id, transaction)

    async def delete_transaction(self, transaction_id: UUID) -> None:
        await self.rest.delete_transaction(transaction_id)

    async def subscribe(self, table: str, filter: str) -> RealtimeSubscription:
        if self.realtime is None:
            raise RuntimeError("Realtime client not configured")
        return await self.realtime.subscribe(table, filter)

    async def close(self) -> None:
        """HTTP 연결 정리"""
        await self.rest.close()

    async def __aenter__(self) -> "SupabaseLedgerStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

"""
SupabaseLedgerStore 테스트

팩토리별 키/토큰 선택과 위임 확인
"""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from core.config.loader import get_settings
from adapters.supabase.store import SupabaseLedgerStore


class TestFactories:
    """for_service / for_user"""

    def test_for_service_uses_service_role_key(self, temp_secrets_file: Path) -> None:
        store = SupabaseLedgerStore.for_service(get_settings(temp_secrets_file))

        assert store.rest.api_key == "service_role_key_fghij"
        assert store.rest.timeout == 5.0
        assert store.realtime is None

    def test_for_user_uses_anon_key_and_token(self, temp_secrets_file: Path) -> None:
        store = SupabaseLedgerStore.for_user(get_settings(temp_secrets_file), "user-jwt")

        assert store.rest.api_key == "anon_key_abcde"
        assert store.rest.access_token == "user-jwt"
        assert store.realtime is not None
        assert store.realtime.access_token == "user-jwt"
        assert store.realtime.ws_base_url == "wss://demo-project.supabase.co"


class TestDelegation:
    """REST/Realtime 위임"""

    @pytest.mark.asyncio
    async def test_subscribe_without_realtime(self, temp_secrets_file: Path) -> None:
        store = SupabaseLedgerStore.for_service(get_settings(temp_secrets_file))

        with pytest.raises(RuntimeError):
            await store.subscribe("transactions", "account_id=eq.x")

    @pytest.mark.asyncio
    async def test_close_closes_rest(self) -> None:
        rest = AsyncMock()
        async with SupabaseLedgerStore(rest=rest):
            pass

        rest.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_accounts_delegates(self) -> None:
        rest = AsyncMock()
        rest.list_accounts.return_value = []
        store = SupabaseLedgerStore(rest=rest)

        assert await store.list_accounts(limit=1) == []
        rest.list_accounts.assert_awaited_once_with(None, 1)

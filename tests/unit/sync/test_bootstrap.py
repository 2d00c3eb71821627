"""
Sync 부트스트랩 테스트
"""

from datetime import datetime, timezone

import pytest

from adapters.mock.ledger_store import InMemoryLedgerStore
from sync.bootstrap import main, resolve_account_id


class TestResolveAccountId:
    """토큰 소유자 계좌 결정"""

    @pytest.mark.asyncio
    async def test_earliest_account(self, store: InMemoryLedgerStore) -> None:
        user_id = store.add_user("alice@example.com")
        store.add_account(user_id, created_at=datetime(2025, 3, 1, tzinfo=timezone.utc))
        first = store.add_account(user_id, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))

        assert await resolve_account_id(store, store.issue_token(user_id)) == first.id

    @pytest.mark.asyncio
    async def test_no_account(self, store: InMemoryLedgerStore) -> None:
        user_id = store.add_user("alice@example.com")

        assert await resolve_account_id(store, store.issue_token(user_id)) is None


class TestMain:
    """설정 로드 실패"""

    @pytest.mark.asyncio
    async def test_missing_secrets_exits(self, temp_dir, monkeypatch) -> None:
        from core.config import loader

        monkeypatch.setattr(loader.Paths, "SECRETS_FILE", temp_dir / "missing.yaml")
        monkeypatch.setattr("sync.bootstrap.setup_logging", lambda *args, **kwargs: None)

        with pytest.raises(SystemExit) as exc_info:
            await main("token")

        assert exc_info.value.code == 1

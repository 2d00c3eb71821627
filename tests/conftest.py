"""
pytest 공통 fixture 정의

설정 파일, 메모리 내 저장소, 샘플 원장 데이터
"""

import tempfile
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

from adapters.mock.ledger_store import InMemoryLedgerStore
from core.config.loader import Settings
from core.ledger.models import Account, Transaction
from core.types import TransactionType
from tests.helpers import TransferParties


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_secrets_file(temp_dir: Path) -> Path:
    """테스트용 secrets.yaml 파일 생성"""
    secrets_content = """# 테스트용 secrets.yaml
supabase:
  url: "https://demo-project.supabase.co/"
  anon_key: "anon_key_abcde"
  service_role_key: "service_role_key_fghij"

timeouts:
  request_sec: 5
  subscribe_ack_sec: 3.5
"""
    secrets_path = temp_dir / "secrets.yaml"
    secrets_path.write_text(secrets_content, encoding="utf-8")
    return secrets_path


@pytest.fixture
def temp_secrets_file_minimal(temp_dir: Path) -> Path:
    """timeouts 섹션 없는 secrets.yaml 파일 생성"""
    secrets_content = """supabase:
  url: "http://127.0.0.1:54321"
  anon_key: "local_anon"
  service_role_key: "local_service_role"
"""
    secrets_path = temp_dir / "secrets_minimal.yaml"
    secrets_path.write_text(secrets_content, encoding="utf-8")
    return secrets_path


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()


# -------------------------------------------------------------------------
# 원장 데이터
# -------------------------------------------------------------------------

@pytest.fixture
def store() -> InMemoryLedgerStore:
    """메모리 내 저장소"""
    return InMemoryLedgerStore()


@pytest.fixture
def account_id() -> uuid.UUID:
    """샘플 계좌 ID"""
    return uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def make_transaction(account_id: uuid.UUID) -> Callable[..., Transaction]:
    """원장 항목 생성 팩토리"""

    def _make(
        amount: str = "10.00",
        type: TransactionType = TransactionType.CREDIT,
        currency: str = "USD",
        category: str = "Food",
        description: str | None = "Lunch",
        account: uuid.UUID | None = None,
        id: uuid.UUID | None = None,
    ) -> Transaction:
        return Transaction(
            id=id or uuid.uuid4(),
            account_id=account or account_id,
            type=type,
            amount=Decimal(amount),
            currency=currency,
            category=category,
            description=description,
            date=datetime(2025, 2, 10, 12, 0, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def sample_account(account_id: uuid.UUID) -> Account:
    """샘플 계좌"""
    from core.types import AccountStatus

    return Account(
        id=account_id,
        user_id=uuid.UUID("22222222-2222-2222-2222-222222222222"),
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        status=AccountStatus.OPEN,
    )


@pytest.fixture
def parties(store: InMemoryLedgerStore) -> TransferParties:
    """계좌를 가진 두 사용자와 alice 토큰"""
    alice_id = store.add_user("alice@example.com")
    bob_id = store.add_user("bob@example.com")
    return TransferParties(
        store=store,
        alice_id=alice_id,
        bob_id=bob_id,
        alice_account=store.add_account(alice_id, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc)),
        bob_account=store.add_account(bob_id, created_at=datetime(2025, 1, 2, tzinfo=timezone.utc)),
        token=store.issue_token(alice_id),
    )

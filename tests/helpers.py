"""
테스트 헬퍼

이체 당사자 묶음과 비동기 조건 대기
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from adapters.mock.ledger_store import InMemoryLedgerStore
from core.ledger.models import Account


@dataclass
class TransferParties:
    """이체 테스트 당사자 (alice → bob)"""

    store: InMemoryLedgerStore
    alice_id: uuid.UUID
    bob_id: uuid.UUID
    alice_account: Account
    bob_account: Account
    token: str

    def payload(self, **overrides: Any) -> dict[str, Any]:
        """alice → bob 기본 이체 본문"""
        body: dict[str, Any] = {
            "sender_account_id": str(self.alice_account.id),
            "recipient_email": "bob@example.com",
            "amount": "100.00",
            "currency": "USD",
            "category": "Transfer",
        }
        body.update(overrides)
        return body


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """조건이 참이 될 때까지 대기

    Raises:
        AssertionError: timeout 초과
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)

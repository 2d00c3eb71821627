"""
core/domain/events.py 테스트

피드 payload → ChangeEvent 변환
"""

import uuid
from decimal import Decimal
from typing import Any, Callable

import pytest

from core.domain.events import (
    DeleteEvent,
    EventDecodeError,
    InsertEvent,
    UpdateEvent,
    decode_change,
    encode_change,
)
from core.ledger.models import Transaction


def raw_record(**overrides: Any) -> dict[str, Any]:
    record = {
        "id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa",
        "account_id": "11111111-1111-1111-1111-111111111111",
        "type": "debit",
        "amount": 100.0,
        "currency": "USD",
        "category": "Transfer",
        "description": "Transfer to bob@example.com",
        "date": "2025-02-10T12:00:00.000Z",
    }
    record.update(overrides)
    return record


class TestDecodeChange:
    """decode_change 테스트"""

    def test_insert(self) -> None:
        event = decode_change({"kind": "insert", "new_record": raw_record(), "old_record": None})

        assert isinstance(event, InsertEvent)
        assert event.record.amount == Decimal("100.0")
        assert event.transaction_id == uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")

    def test_update(self) -> None:
        event = decode_change({"kind": "update", "new_record": raw_record(amount="42.10")})

        assert isinstance(event, UpdateEvent)
        assert event.record.amount == Decimal("42.10")

    def test_delete_uses_old_record(self) -> None:
        event = decode_change({"kind": "delete", "new_record": None, "old_record": raw_record()})

        assert isinstance(event, DeleteEvent)
        assert event.old_record.currency == "USD"

    def test_kind_case_insensitive(self) -> None:
        event = decode_change({"kind": "INSERT", "new_record": raw_record()})
        assert isinstance(event, InsertEvent)

    def test_unknown_kind(self) -> None:
        with pytest.raises(EventDecodeError, match="알 수 없는"):
            decode_change({"kind": "truncate", "new_record": raw_record()})

    def test_missing_kind(self) -> None:
        with pytest.raises(EventDecodeError):
            decode_change({"new_record": raw_record()})

    def test_insert_without_record(self) -> None:
        with pytest.raises(EventDecodeError, match="new_record"):
            decode_change({"kind": "insert", "old_record": raw_record()})

    def test_delete_without_old_record(self) -> None:
        """REPLICA IDENTITY 미설정 등으로 old_record가 비어 있는 경우"""
        with pytest.raises(EventDecodeError, match="old_record"):
            decode_change({"kind": "delete", "old_record": {}})

    def test_malformed_record(self) -> None:
        with pytest.raises(EventDecodeError):
            decode_change({"kind": "insert", "new_record": raw_record(amount="abc")})

    def test_non_positive_amount(self) -> None:
        with pytest.raises(EventDecodeError):
            decode_change({"kind": "insert", "new_record": raw_record(amount=0)})

    def test_payload_not_dict(self) -> None:
        with pytest.raises(EventDecodeError):
            decode_change(["insert"])  # type: ignore[arg-type]


class TestEncodeChange:
    """encode_change 테스트"""

    def test_insert_and_delete_shapes(self, make_transaction: Callable[..., Transaction]) -> None:
        tx = make_transaction()

        inserted = encode_change(InsertEvent(record=tx))
        deleted = encode_change(DeleteEvent(old_record=tx))

        assert inserted["kind"] == "insert"
        assert inserted["old_record"] is None
        assert deleted["kind"] == "delete"
        assert deleted["new_record"] is None
        assert deleted["old_record"]["id"] == str(tx.id)

    def test_decode_accepts_encoded(self, make_transaction: Callable[..., Transaction]) -> None:
        tx = make_transaction(amount="12.34")
        assert decode_change(encode_change(UpdateEvent(record=tx))) == UpdateEvent(record=tx)

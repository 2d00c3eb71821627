"""
core/types.py 테스트

Enum 값과 문자열 직렬화 확인
"""

import json

import pytest

from core.types import (
    AccountStatus,
    ChangeKind,
    FeedState,
    TransactionType,
    TransferErrorCode,
    TransferSide,
)


class TestTransactionType:
    """TransactionType Enum 테스트"""

    def test_values(self) -> None:
        assert TransactionType.CREDIT.value == "credit"
        assert TransactionType.DEBIT.value == "debit"

    def test_from_wire_value(self) -> None:
        """저장소 값에서 생성"""
        assert TransactionType("debit") is TransactionType.DEBIT

    def test_unknown_value_rejected(self) -> None:
        with pytest.raises(ValueError):
            TransactionType("refund")


class TestAccountStatus:
    """AccountStatus Enum 테스트"""

    def test_values(self) -> None:
        assert {s.value for s in AccountStatus} == {"open", "restricted", "closed"}


class TestChangeKind:
    """ChangeKind Enum 테스트"""

    def test_values(self) -> None:
        assert [k.value for k in ChangeKind] == ["insert", "update", "delete"]


class TestFeedState:
    """FeedState Enum 테스트"""

    def test_values(self) -> None:
        assert FeedState.DISCONNECTED.value == "DISCONNECTED"
        assert FeedState.SUBSCRIBING.value == "SUBSCRIBING"
        assert FeedState.STREAMING.value == "STREAMING"


class TestTransferEnums:
    """이체 관련 Enum 테스트"""

    def test_sides(self) -> None:
        assert TransferSide.SENDER.value == "sender"
        assert TransferSide.RECIPIENT.value == "recipient"

    def test_error_codes(self) -> None:
        assert len(TransferErrorCode) == 7
        assert TransferErrorCode.LEDGER_WRITE_FAILED.value == "LEDGER_WRITE_FAILED"

    def test_str_enum_json_serializable(self) -> None:
        """str 상속 Enum은 JSON 직렬화 가능"""
        data = {"code": TransferErrorCode.TIMEOUT, "side": TransferSide.RECIPIENT}
        assert json.loads(json.dumps(data)) == {"code": "TIMEOUT", "side": "recipient"}

"""
core/domain/errors.py 테스트

이체 에러 → 상태 코드/응답 본문 변환
"""

import pytest

from core.domain.errors import (
    InvalidRequestError,
    LedgerWriteFailedError,
    RecipientHasNoAccountError,
    RecipientNotFoundError,
    TransferError,
    TransferTimeoutError,
    UnauthorizedError,
)
from core.types import TransferSide


class TestStatusMapping:
    """에러 → HTTP 상태 코드"""

    @pytest.mark.parametrize(
        "error,status,code",
        [
            (InvalidRequestError("bad"), 400, "INVALID_REQUEST"),
            (UnauthorizedError(UnauthorizedError.MISSING_CREDENTIAL), 401, "UNAUTHORIZED"),
            (RecipientNotFoundError(), 404, "RECIPIENT_NOT_FOUND"),
            (RecipientHasNoAccountError(), 404, "RECIPIENT_HAS_NO_ACCOUNT"),
            (LedgerWriteFailedError(TransferSide.SENDER), 500, "LEDGER_WRITE_FAILED"),
            (TransferTimeoutError("authentication"), 504, "TIMEOUT"),
            (TransferError("boom"), 500, "INTERNAL_ERROR"),
        ],
    )
    def test_status(self, error: TransferError, status: int, code: str) -> None:
        assert error.http_status == status
        assert error.to_dict()["code"] == code


class TestUnauthorizedError:
    """인증 실패 두 하위 케이스는 같은 응답"""

    def test_same_body(self) -> None:
        missing = UnauthorizedError(UnauthorizedError.MISSING_CREDENTIAL)
        invalid = UnauthorizedError(UnauthorizedError.INVALID_CREDENTIAL)

        assert missing.to_dict() == invalid.to_dict() == {"error": "Unauthorized", "code": "UNAUTHORIZED"}
        assert missing.reason != invalid.reason


class TestRecipientErrors:
    def test_messages(self) -> None:
        assert RecipientNotFoundError().message == "Target user not found"
        assert RecipientHasNoAccountError().message == "Target user has no accounts"


class TestLedgerWriteFailedError:
    """원장 쓰기 실패"""

    def test_sender_side_not_partial(self) -> None:
        error = LedgerWriteFailedError(TransferSide.SENDER, "connection reset")

        assert error.message == "Failed to create debit transaction"
        assert error.partial is False
        assert error.to_dict() == {
            "error": "Failed to create debit transaction",
            "code": "LEDGER_WRITE_FAILED",
            "side": "sender",
            "partial": False,
            "details": "connection reset",
        }

    def test_recipient_side_partial(self) -> None:
        error = LedgerWriteFailedError(TransferSide.RECIPIENT)

        assert error.message == "Failed to create credit transaction"
        assert error.partial is True
        assert "details" not in error.to_dict()


class TestTransferTimeoutError:
    """타임아웃"""

    def test_lookup_timeout_not_partial(self) -> None:
        error = TransferTimeoutError("recipient lookup")

        assert error.partial is False
        assert error.to_dict() == {"error": "Timed out waiting for recipient lookup", "code": "TIMEOUT"}

    def test_write_timeout_carries_side(self) -> None:
        error = TransferTimeoutError("recipient write", TransferSide.RECIPIENT)

        body = error.to_dict()
        assert body["side"] == "recipient"
        assert body["partial"] is True

"""
TransferClient 테스트

httpx.MockTransport로 이체 엔드포인트 응답을 흉내낸다.
"""

import json
import uuid
from decimal import Decimal

import httpx
import pytest

from core.ledger.models import TransferRequest
from sync.transfer_client import TransferClient, TransferRejectedError


SENDER = uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def request_body() -> TransferRequest:
    return TransferRequest(
        sender_account_id=SENDER,
        recipient_email="bob@example.com",
        amount=Decimal("100.00"),
        currency="USD",
        category="Transfer",
    )


def make_client(handler) -> TransferClient:
    return TransferClient(
        "http://ledgersync.test/",
        access_token="caller-jwt",
        transport=httpx.MockTransport(handler),
    )


class TestTransfer:
    """POST /transfer"""

    @pytest.mark.asyncio
    async def test_success(self, request_body: TransferRequest) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "message": "Transaction successful",
                    "amount": "100.00",
                    "currency": "USD",
                    "recipient_email": "bob@example.com",
                },
            )

        async with make_client(handler) as client:
            receipt = await client.transfer(request_body, idempotency_key="order-42")

        assert receipt.amount == Decimal("100.00")
        assert receipt.message == "Transaction successful"

        sent = seen[0]
        assert sent.url.path == "/transfer"
        assert sent.headers["Authorization"] == "Bearer caller-jwt"
        assert sent.headers["Idempotency-Key"] == "order-42"
        assert json.loads(sent.content)["sender_account_id"] == str(SENDER)

    @pytest.mark.asyncio
    async def test_no_idempotency_header_by_default(self, request_body: TransferRequest) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"amount": "100.00", "currency": "USD", "recipient_email": "bob@example.com"}
            )

        async with make_client(handler) as client:
            await client.transfer(request_body)

        assert "Idempotency-Key" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_not_found(self, request_body: TransferRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "Target user not found", "code": "RECIPIENT_NOT_FOUND"})

        async with make_client(handler) as client:
            with pytest.raises(TransferRejectedError) as exc_info:
                await client.transfer(request_body)

        error = exc_info.value
        assert error.status_code == 404
        assert error.code == "RECIPIENT_NOT_FOUND"
        assert error.message == "Target user not found"
        assert not error.partial

    @pytest.mark.asyncio
    async def test_partial_failure(self, request_body: TransferRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                500,
                json={
                    "error": "Failed to create credit transaction",
                    "code": "LEDGER_WRITE_FAILED",
                    "side": "recipient",
                    "partial": True,
                },
            )

        async with make_client(handler) as client:
            with pytest.raises(TransferRejectedError) as exc_info:
                await client.transfer(request_body)

        assert exc_info.value.partial
        assert exc_info.value.body["side"] == "recipient"

    @pytest.mark.asyncio
    async def test_non_json_error(self, request_body: TransferRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with make_client(handler) as client:
            with pytest.raises(TransferRejectedError) as exc_info:
                await client.transfer(request_body)

        assert exc_info.value.status_code == 502
        assert exc_info.value.code is None
        assert exc_info.value.message == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_invalid_success_body(self, request_body: TransferRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "ok"})

        async with make_client(handler) as client:
            with pytest.raises(TransferRejectedError):
                await client.transfer(request_body)

    @pytest.mark.asyncio
    async def test_timeout(self, request_body: TransferRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransferRejectedError) as exc_info:
                await client.transfer(request_body)

        assert exc_info.value.status_code is None
        assert exc_info.value.code == "TIMEOUT"

    @pytest.mark.asyncio
    async def test_connection_error(self, request_body: TransferRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransferRejectedError) as exc_info:
                await client.transfer(request_body)

        assert exc_info.value.status_code is None

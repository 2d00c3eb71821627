"""
Transfer 클라이언트

이체 엔드포인트(POST /transfer)를 호출하는 httpx 클라이언트.
서버 에러 본문 {error, code, ...}는 TransferRejectedError로 변환된다.
"""

import logging
from typing import Any

import httpx

from core.constants import Defaults
from core.ledger.models import TransferReceipt, TransferRequest
from core.types import TransferErrorCode

logger = logging.getLogger(__name__)


class TransferRejectedError(Exception):
    """이체 거부/실패

    Attributes:
        status_code: HTTP 상태 코드 (응답을 받지 못했으면 None)
        code: 서버 에러 코드 (예: RECIPIENT_NOT_FOUND)
        message: 서버 에러 메시지
        body: 응답 본문 전체
    """

    def __init__(
        self,
        status_code: int | None,
        code: str | None,
        message: str,
        body: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.body = body or {}

    @property
    def partial(self) -> bool:
        """송신자 차변만 커밋되었을 수 있는지 여부"""
        return bool(self.body.get("partial"))

    def __repr__(self) -> str:
        return f"TransferRejectedError(status_code={self.status_code}, code={self.code!r}, message={self.message!r})"


class TransferClient:
    """이체 엔드포인트 클라이언트

    Args:
        base_url: 서비스 베이스 URL (예: http://localhost:8000)
        access_token: 호출자 액세스 토큰 (Bearer)
        timeout: HTTP 요청 타임아웃 (초)
        transport: httpx 전송 계층 (테스트용)

    사용 예시:
    ```python
    async with TransferClient(base_url, access_token) as client:
        receipt = await client.transfer(request, idempotency_key="order-42")
    ```
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = Defaults.REQUEST_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 반환 (lazy init)"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def transfer(
        self,
        request: TransferRequest,
        idempotency_key: str | None = None,
    ) -> TransferReceipt:
        """이체 실행

        Args:
            request: 이체 요청
            idempotency_key: 재시도 시 같은 값을 보내면 중복 기록되지 않음

        Returns:
            TransferReceipt

        Raises:
            TransferRejectedError: 거부, 실패, 연결 오류
        """
        client = await self._ensure_client()

        headers = {"Authorization": f"Bearer {self.access_token}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            response = await client.post("/transfer", json=request.to_payload(), headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("이체 요청 타임아웃", extra={"timeout": self.timeout})
            raise TransferRejectedError(
                None, TransferErrorCode.TIMEOUT.value, "Transfer request timed out"
            ) from e
        except httpx.RequestError as e:
            logger.error(f"이체 요청 실패: {e}")
            raise TransferRejectedError(None, None, str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400:
            message = data.get("error") or response.text or f"HTTP {response.status_code}"
            logger.warning(
                f"이체 거부: {response.status_code} - {message}",
                extra={"error_code": data.get("code")},
            )
            raise TransferRejectedError(response.status_code, data.get("code"), str(message), data)

        try:
            return TransferReceipt.from_dict(data)
        except (KeyError, ValueError) as e:
            raise TransferRejectedError(
                response.status_code, None, f"invalid transfer response: {e}", data
            ) from e

    async def __aenter__(self) -> "TransferClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

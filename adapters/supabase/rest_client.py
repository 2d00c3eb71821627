"""
Supabase REST 클라이언트

PostgREST(/rest/v1), GoTrue(/auth/v1)와 통신하는 클라이언트.
계좌/원장 항목 조회·쓰기, 이메일 → 사용자 조회(RPC), 액세스 토큰 검증 제공.

IAuthProvider, IIdentityLookup 및 ILedgerStore의 REST 부분 준수.

주의: 이메일 → 사용자 조회는 auth.users 접근이 필요하므로
service_role 키로 생성한 클라이언트에서만 동작한다.
"""

import logging
from typing import Any
from uuid import UUID

import httpx

from adapters.errors import (
    DuplicateRecordError,
    InvalidCredentialError,
    LedgerStoreError,
    LedgerStoreTimeoutError,
    RecordNotFoundError,
)
from core.constants import Defaults, SupabaseEndpoints, TableNames
from core.ledger.models import Account, AuthUser, RecordDecodeError, Transaction

logger = logging.getLogger(__name__)

# Postgres unique_violation SQLSTATE
PG_UNIQUE_VIOLATION = "23505"


class SupabaseRestClient:
    """Supabase REST 클라이언트

    Args:
        base_url: Supabase 프로젝트 URL (예: https://xyz.supabase.co)
        api_key: apikey 헤더 값 (anon 또는 service_role 키)
        access_token: Authorization 헤더 토큰 (None이면 api_key 사용)
        timeout: HTTP 요청 타임아웃 (초)
        transport: httpx 전송 계층 (테스트용 MockTransport 주입)

    사용 예시:
    ```python
    async with SupabaseRestClient(url, service_role_key) as client:
        user = await client.get_user(token)
        rows = await client.list_transactions(account_id)
    ```
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout: float = Defaults.REQUEST_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token or api_key
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

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token or self.access_token}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> Any:
        """API 요청 실행

        Args:
            method: HTTP 메서드
            path: 경로 (예: /rest/v1/transactions)
            params: 쿼리 파라미터
            body: JSON 본문
            headers: 추가 헤더
            access_token: 이번 요청에만 사용할 토큰

        Returns:
            응답 JSON (본문이 없으면 None)

        Raises:
            LedgerStoreTimeoutError: 타임아웃
            DuplicateRecordError: 유일성 제약 위반
            LedgerStoreError: 기타 실패
        """
        client = await self._ensure_client()

        request_headers = self._headers(access_token)
        if headers:
            request_headers.update(headers)

        try:
            response = await client.request(
                method,
                path,
                params=params,
                json=body,
                headers=request_headers,
            )
        except httpx.TimeoutException as e:
            logger.warning(
                f"Supabase request timeout: {method} {path}",
                extra={"timeout": self.timeout},
            )
            raise LedgerStoreTimeoutError(f"{method} {path} timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Supabase request error: {e}")
            raise LedgerStoreError(str(e)) from e

        if response.status_code >= 400:
            self._raise_for_error(method, path, response)

        if not response.content:
            return None
        return response.json()

    def _raise_for_error(
        self,
        method: str,
        path: str,
        response: httpx.Response,
    ) -> None:
        """에러 응답을 저장소 예외로 변환

        PostgREST: {code, message, details, hint}
        GoTrue: {error, error_description} 또는 {code, msg}
        """
        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        message = (
            data.get("message")
            or data.get("msg")
            or data.get("error_description")
            or data.get("error")
            or response.text
            or f"HTTP {response.status_code}"
        )
        code = data.get("code")
        code = str(code) if code is not None else None

        logger.error(
            f"Supabase API error: {response.status_code} - {message}",
            extra={"path": path, "method": method, "error_code": code},
        )

        if response.status_code == 409 or code == PG_UNIQUE_VIOLATION:
            raise DuplicateRecordError(str(message), response.status_code, code)
        raise LedgerStoreError(str(message), response.status_code, code)

    # =========================================================================
    # 인증 / 사용자 조회
    # =========================================================================

    async def get_user(self, access_token: str) -> AuthUser:
        """액세스 토큰으로 사용자 조회

        Raises:
            InvalidCredentialError: 토큰 무효/만료 (401/403)
        """
        try:
            data = await self._request(
                "GET",
                f"{SupabaseEndpoints.AUTH_PATH}/user",
                access_token=access_token,
            )
        except LedgerStoreTimeoutError:
            raise
        except LedgerStoreError as e:
            if e.status_code in (401, 403):
                raise InvalidCredentialError(str(e), e.status_code, e.code) from e
            raise

        if not isinstance(data, dict) or not data.get("id"):
            raise InvalidCredentialError("Auth server returned no user")

        try:
            return AuthUser.from_record(data)
        except RecordDecodeError as e:
            raise InvalidCredentialError(str(e)) from e

    async def find_user_ids_by_email(self, email: str) -> list[UUID]:
        """이메일에 해당하는 사용자 ID 목록 (RPC get_user_id_by_email)"""
        data = await self._request(
            "POST",
            f"{SupabaseEndpoints.REST_PATH}/rpc/{SupabaseEndpoints.USER_ID_BY_EMAIL_RPC}",
            body={"email": email},
        )
        if not data:
            return []

        user_ids = []
        for row in data:
            try:
                user_ids.append(UUID(str(row["id"])))
            except (KeyError, TypeError, ValueError):
                logger.warning("RPC 응답에 잘못된 id", extra={"row": row})
        return user_ids

    # =========================================================================
    # 계좌 조회
    # =========================================================================

    async def list_accounts(
        self,
        owner_user_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[Account]:
        """계좌 목록 조회 (created_at 오름차순)"""
        params: dict[str, Any] = {"select": "*", "order": "created_at.asc"}
        if owner_user_id is not None:
            params["user_id"] = f"eq.{owner_user_id}"
        if limit is not None:
            params["limit"] = str(limit)

        data = await self._request(
            "GET",
            f"{SupabaseEndpoints.REST_PATH}/{TableNames.ACCOUNTS}",
            params=params,
        )

        accounts = []
        for row in data or []:
            try:
                accounts.append(Account.from_record(row))
            except RecordDecodeError as e:
                logger.warning("account 행 디코딩 실패, 건너뜀", extra={"error": str(e)})
        return accounts

    # =========================================================================
    # 원장 항목
    # =========================================================================

    async def list_transactions(self, account_id: UUID) -> list[Transaction]:
        """계좌의 모든 원장 항목 조회"""
        data = await self._request(
            "GET",
            f"{SupabaseEndpoints.REST_PATH}/{TableNames.TRANSACTIONS}",
            params={
                "select": "*",
                "account_id": f"eq.{account_id}",
                "order": "date.asc",
            },
        )

        transactions = []
        for row in data or []:
            try:
                transactions.append(Transaction.from_record(row))
            except RecordDecodeError as e:
                logger.warning(
                    "transaction 행 디코딩 실패, 건너뜀", extra={"error": str(e)}
                )
        return transactions

    def _decode_written(self, data: Any, fallback: Transaction | None = None) -> Transaction:
        """쓰기 응답(return=representation)의 첫 행 디코딩"""
        if not data:
            if fallback is not None:
                # return=representation이 무시된 경우 요청값 그대로 사용
                return fallback
            raise LedgerStoreError("write returned no rows")
        try:
            return Transaction.from_record(data[0])
        except RecordDecodeError as e:
            raise LedgerStoreError(f"write returned an invalid row: {e}") from e

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """원장 항목 추가 (저장된 행 반환)"""
        data = await self._request(
            "POST",
            f"{SupabaseEndpoints.REST_PATH}/{TableNames.TRANSACTIONS}",
            body=[transaction.to_record()],
            headers={"Prefer": "return=representation"},
        )
        return self._decode_written(data, fallback=transaction)

    async def update_transaction(
        self,
        transaction_id: UUID,
        transaction: Transaction,
    ) -> Transaction:
        """원장 항목 전체 교체"""
        record = transaction.to_record()
        record["id"] = str(transaction_id)

        data = await self._request(
            "PATCH",
            f"{SupabaseEndpoints.REST_PATH}/{TableNames.TRANSACTIONS}",
            params={"id": f"eq.{transaction_id}"},
            body=record,
            headers={"Prefer": "return=representation"},
        )
        if not data:
            raise RecordNotFoundError(f"transaction {transaction_id} not found", 404)
        return self._decode_written(data)

    async def delete_transaction(self, transaction_id: UUID) -> None:
        """원장 항목 삭제"""
        await self._request(
            "DELETE",
            f"{SupabaseEndpoints.REST_PATH}/{TableNames.TRANSACTIONS}",
            params={"id": f"eq.{transaction_id}"},
        )

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SupabaseRestClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

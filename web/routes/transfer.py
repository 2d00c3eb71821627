"""
이체 API 라우터

POST /transfer - 사용자 간 이체

요청 본문은 직접 파싱하여 검증 실패를 400 {error, code}로 응답한다.
모든 에러는 {error, code, ...} 형태로 변환되며 내부 예외는 그대로 노출하지 않는다.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from core.domain.errors import InvalidRequestError, TransferError
from core.types import TransferErrorCode
from web.dependencies import get_transfer_service
from web.models.requests import TransferRequestBody
from web.models.responses import ErrorResponse, TransferReceiptResponse
from web.services.transfer_service import TransferService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Transfer"])


# =========================================================================
# 헬퍼
# =========================================================================


def parse_bearer_token(authorization: str | None) -> str | None:
    """Authorization 헤더에서 토큰 추출

    "Bearer <token>"이면 token, 다른 형식이면 원문 그대로
    (인증 단계에서 무효로 처리됨), 비어 있으면 None.
    """
    if authorization is None:
        return None

    value = authorization.strip()
    if not value:
        return None

    scheme, _, token = value.partition(" ")
    if scheme.lower() == "bearer":
        return token.strip() or None
    return value


def error_response(error: TransferError) -> JSONResponse:
    """TransferError → JSON 응답"""
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


# =========================================================================
# 이체 API
# =========================================================================


@router.post(
    "/transfer",
    response_model=TransferReceiptResponse,
    responses={
        400: {"model": ErrorResponse, "description": "요청 형식 오류"},
        401: {"model": ErrorResponse, "description": "인증 실패"},
        404: {"model": ErrorResponse, "description": "수신자/수신 계좌 없음"},
        500: {"model": ErrorResponse, "description": "원장 쓰기 실패"},
        504: {"model": ErrorResponse, "description": "원격 호출 타임아웃"},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": TransferRequestBody.model_json_schema()},
            },
        },
    },
)
async def create_transfer(
    request: Request,
    authorization: str | None = Header(default=None),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    service: TransferService = Depends(get_transfer_service),
) -> Any:
    """이체 실행

    Headers:
        Authorization: Bearer <access_token>
        Idempotency-Key: 재전송 중복 방지 키 (선택)

    Returns:
        200 {message, amount, currency, recipient_email}
    """
    try:
        payload = await request.json()
    except ValueError:
        return error_response(InvalidRequestError("Request body must be valid JSON"))

    try:
        receipt = await service.execute(
            payload,
            credential=parse_bearer_token(authorization),
            idempotency_key=idempotency_key,
        )
    except TransferError as e:
        log = logger.error if e.http_status >= 500 else logger.info
        log(
            f"이체 실패: {e.code.value} - {e.message}",
            extra={"status_code": e.http_status, "partial": e.partial},
        )
        return error_response(e)
    except Exception as e:
        logger.exception(f"이체 처리 중 예상치 못한 에러: {e!r}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "code": TransferErrorCode.INTERNAL_ERROR.value},
        )

    return TransferReceiptResponse(**receipt.to_dict())

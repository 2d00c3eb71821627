"""
요청 스키마 (Pydantic)

OpenAPI 문서용 이체 요청 본문.
실제 검증은 TransferRequest.from_payload에서 수행한다
(검증 실패를 422가 아닌 400 {error, code}로 응답하기 위해).
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class TransferRequestBody(BaseModel):
    """이체 요청 본문"""

    sender_account_id: str = Field(..., description="송신 계좌 ID (UUID)")
    recipient_email: str = Field(..., description="수신자 이메일")
    amount: Decimal = Field(..., gt=0, description="금액 (양수)")
    currency: str = Field(..., min_length=3, max_length=3, description="통화 코드")
    category: str = Field(..., description="분류")
    description: str | None = Field(default=None, description="설명 (없으면 기본 문구)")

"""
응답 스키마 (Pydantic)

Web API 응답 데이터 구조
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    version: str = Field(..., description="서비스 버전")


class TransferReceiptResponse(BaseModel):
    """이체 성공 응답"""

    message: str = Field(..., description="결과 메시지")
    amount: str = Field(..., description="금액 (문자열로 정밀도 유지)")
    currency: str = Field(..., description="통화 코드")
    recipient_email: str = Field(..., description="수신자 이메일")


class ErrorResponse(BaseModel):
    """에러 응답

    side/partial은 원장 쓰기 실패와 쓰기 단계 타임아웃에서만 포함된다.
    partial=True이면 송신자 차변만 커밋되었을 수 있다.
    """

    error: str = Field(..., description="에러 메시지")
    code: str = Field(..., description="에러 코드")
    side: str | None = Field(default=None, description="실패한 쓰기 방향 (sender/recipient)")
    partial: bool | None = Field(default=None, description="일부만 커밋되었을 수 있는지 여부")
    details: str | None = Field(default=None, description="저장소 에러 상세")

"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import TransferRequestBody
from web.models.responses import (
    ErrorResponse,
    HealthResponse,
    TransferReceiptResponse,
)

__all__ = [
    # Requests
    "TransferRequestBody",
    # Responses
    "ErrorResponse",
    "HealthResponse",
    "TransferReceiptResponse",
]

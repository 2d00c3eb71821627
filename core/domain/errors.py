"""
이체 도메인 에러

TransferService가 발생시키는 모든 실패 유형.
서비스 경계(HTTP)에서 {error, code} 형태로 변환된다.

사용자에게 보여줄 때 구분해야 하는 두 부류:
- 아무 일도 일어나지 않음: 검증/인증/수신자 조회 실패, 송신측 쓰기 실패
- 절반만 일어났을 수 있음: 수신측 쓰기 실패 (송신자 차변은 이미 커밋됨)
"""

from typing import Any

from core.types import TransferErrorCode, TransferSide


class TransferError(Exception):
    """이체 실패 기본 예외

    Attributes:
        code: 에러 코드
        http_status: HTTP 응답 상태 코드
        message: 호출자에게 노출되는 메시지
    """

    code: TransferErrorCode = TransferErrorCode.INTERNAL_ERROR
    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def partial(self) -> bool:
        """일부 쓰기가 커밋되었을 수 있는지 여부"""
        return False

    def to_dict(self) -> dict[str, Any]:
        """응답 본문 변환"""
        return {"error": self.message, "code": self.code.value}


class InvalidRequestError(TransferError):
    """필수 필드 누락 또는 형식 오류 (호출자가 수정, 재시도 안 함)"""

    code = TransferErrorCode.INVALID_REQUEST
    http_status = 400


class UnauthorizedError(TransferError):
    """자격 증명 누락/무효

    reason은 내부 로깅용이며 응답에는 노출하지 않는다.
    두 하위 케이스 모두 동일한 401 응답으로 변환된다.
    """

    code = TransferErrorCode.UNAUTHORIZED
    http_status = 401

    MISSING_CREDENTIAL = "MissingCredential"
    INVALID_CREDENTIAL = "InvalidCredential"

    def __init__(self, reason: str):
        super().__init__("Unauthorized")
        self.reason = reason


class RecipientNotFoundError(TransferError):
    """수신자 이메일에 해당하는 사용자 없음"""

    code = TransferErrorCode.RECIPIENT_NOT_FOUND
    http_status = 404

    def __init__(self, message: str = "Target user not found"):
        super().__init__(message)


class RecipientHasNoAccountError(TransferError):
    """수신자에게 계좌가 없음"""

    code = TransferErrorCode.RECIPIENT_HAS_NO_ACCOUNT
    http_status = 404

    def __init__(self, message: str = "Target user has no accounts"):
        super().__init__(message)


class LedgerWriteFailedError(TransferError):
    """원장 쓰기 실패

    side=RECIPIENT이면 송신자 차변은 이미 커밋된 상태 (자동 롤백 없음).
    """

    code = TransferErrorCode.LEDGER_WRITE_FAILED
    http_status = 500

    def __init__(self, side: TransferSide, details: str | None = None):
        entry_type = "debit" if side == TransferSide.SENDER else "credit"
        super().__init__(f"Failed to create {entry_type} transaction")
        self.side = side
        self.details = details

    @property
    def partial(self) -> bool:
        return self.side == TransferSide.RECIPIENT

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["side"] = self.side.value
        data["partial"] = self.partial
        if self.details:
            data["details"] = self.details
        return data


class TransferTimeoutError(TransferError):
    """원격 호출 대기 시간 초과 (자동 재시도 안 함)

    쓰기 단계에서 발생한 경우 side가 설정된다.
    """

    code = TransferErrorCode.TIMEOUT
    http_status = 504

    def __init__(self, operation: str, side: TransferSide | None = None):
        super().__init__(f"Timed out waiting for {operation}")
        self.operation = operation
        self.side = side

    @property
    def partial(self) -> bool:
        # 쓰기 단계 타임아웃은 커밋 여부를 알 수 없음
        return self.side is not None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.side is not None:
            data["side"] = self.side.value
            data["partial"] = self.partial
        return data

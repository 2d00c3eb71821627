"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class TransactionType(str, Enum):
    """원장 항목 유형

    금액은 항상 양수이며, 잔고 효과의 부호는 유형이 결정한다.
    """

    CREDIT = "credit"
    DEBIT = "debit"


class AccountStatus(str, Enum):
    """계좌 상태"""

    OPEN = "open"
    RESTRICTED = "restricted"
    CLOSED = "closed"


class ChangeKind(str, Enum):
    """Change feed 변경 종류"""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class FeedState(str, Enum):
    """Change feed 구독 상태

    DISCONNECTED → SUBSCRIBING → STREAMING → (장애 시) DISCONNECTED
    """

    DISCONNECTED = "DISCONNECTED"
    SUBSCRIBING = "SUBSCRIBING"
    STREAMING = "STREAMING"


class TransferSide(str, Enum):
    """이체의 원장 쓰기 방향"""

    SENDER = "sender"
    RECIPIENT = "recipient"


class TransferErrorCode(str, Enum):
    """이체 실패 코드 (서비스 경계에서 노출)"""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    RECIPIENT_NOT_FOUND = "RECIPIENT_NOT_FOUND"
    RECIPIENT_HAS_NO_ACCOUNT = "RECIPIENT_HAS_NO_ACCOUNT"
    LEDGER_WRITE_FAILED = "LEDGER_WRITE_FAILED"
    TIMEOUT = "TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

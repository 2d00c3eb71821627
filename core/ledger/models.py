"""
원장 데이터 모델

LedgerStore의 accounts / transactions 행과 이체 요청/영수증.
모든 금액은 Decimal, 모든 ID는 UUID, 모든 시각은 UTC datetime.

와이어 매핑 (snake_case):
    accounts:     id, user_id, created_at, status
    transactions: id, account_id, type, amount, currency, category, description, date
"""

import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from core.domain.errors import InvalidRequestError
from core.types import AccountStatus, TransactionType
from core.utils.timezone import format_timestamp, now_utc, parse_timestamp


class RecordDecodeError(ValueError):
    """저장소 레코드 디코딩 실패"""

    pass


def parse_amount(value: Any) -> Decimal:
    """금액 파싱 (JSON 숫자/문자열/Decimal 허용)

    float는 str()을 거쳐 변환하여 이진 부동소수 오차를 피한다.

    Raises:
        ValueError: 숫자가 아니거나 유한하지 않은 값
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"금액 형식이 아닙니다: {value!r}")

    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"유한한 금액이 아닙니다: {value!r}")

    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"금액 형식이 아닙니다: {value!r}") from e

    if not amount.is_finite():
        raise ValueError(f"유한한 금액이 아닙니다: {value!r}")

    return amount


def _parse_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


@dataclass(frozen=True)
class Account:
    """계좌

    계좌 개설 흐름(범위 밖)에서 생성되며 여기서는 읽기만 한다.

    Attributes:
        id: 계좌 ID
        user_id: 소유자 사용자 ID
        created_at: 생성 시각 (수신 계좌 선택 기준)
        status: 계좌 상태
    """

    id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime
    status: AccountStatus

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Account":
        """저장소 레코드에서 생성

        Raises:
            RecordDecodeError: 필드 누락 또는 형식 오류
        """
        try:
            return cls(
                id=_parse_uuid(data["id"]),
                user_id=_parse_uuid(data["user_id"]),
                created_at=parse_timestamp(data["created_at"]),
                status=AccountStatus(data["status"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordDecodeError(f"account 레코드 디코딩 실패: {e}") from e

    def to_record(self) -> dict[str, Any]:
        """저장소 레코드로 변환"""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "created_at": format_timestamp(self.created_at),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Transaction:
    """원장 항목

    불변식: amount > 0. 잔고 효과의 부호는 type이 결정한다.
    수정은 전체 교체(full replace)만 허용한다.

    Attributes:
        id: 항목 ID (저장소에서 유일)
        account_id: 소속 계좌 ID
        type: CREDIT(입금) / DEBIT(출금)
        amount: 금액 (양수)
        currency: 3자리 통화 코드 (변환 없이 불투명 태그로 취급)
        category: 분류
        description: 설명 (선택)
        date: 거래 시각
    """

    id: uuid.UUID
    account_id: uuid.UUID
    type: TransactionType
    amount: Decimal
    currency: str
    category: str
    description: str | None = None
    date: datetime = field(default_factory=now_utc)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"amount는 0보다 커야 합니다: {self.amount}")

    @classmethod
    def create(
        cls,
        account_id: uuid.UUID,
        type: TransactionType,
        amount: Decimal,
        currency: str,
        category: str,
        description: str | None = None,
        date: datetime | None = None,
        id: uuid.UUID | None = None,
    ) -> "Transaction":
        """새 항목 생성 (id/date 자동 할당)"""
        return cls(
            id=id or uuid.uuid4(),
            account_id=account_id,
            type=type,
            amount=amount,
            currency=currency,
            category=category,
            description=description,
            date=date or now_utc(),
        )

    @property
    def signed_amount(self) -> Decimal:
        """부호 있는 금액 (CREDIT=+, DEBIT=-)"""
        if self.type == TransactionType.DEBIT:
            return -self.amount
        return self.amount

    def with_account(self, account_id: uuid.UUID) -> "Transaction":
        """계좌 ID만 바꾼 복사본"""
        return replace(self, account_id=account_id)

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Transaction":
        """저장소/피드 레코드에서 생성

        Raises:
            RecordDecodeError: 필드 누락 또는 형식 오류
        """
        try:
            return cls(
                id=_parse_uuid(data["id"]),
                account_id=_parse_uuid(data["account_id"]),
                type=TransactionType(data["type"]),
                amount=parse_amount(data["amount"]),
                currency=str(data["currency"]),
                category=str(data["category"]),
                description=data.get("description"),
                date=parse_timestamp(data["date"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordDecodeError(f"transaction 레코드 디코딩 실패: {e}") from e

    def to_record(self) -> dict[str, Any]:
        """저장소 레코드로 변환 (금액은 문자열로 정밀도 유지)"""
        return {
            "id": str(self.id),
            "account_id": str(self.account_id),
            "type": self.type.value,
            "amount": str(self.amount),
            "currency": self.currency,
            "category": self.category,
            "description": self.description,
            "date": format_timestamp(self.date),
        }


@dataclass(frozen=True)
class AuthUser:
    """인증된 사용자 (auth 서브시스템 조회 결과)"""

    id: uuid.UUID
    email: str | None = None

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "AuthUser":
        try:
            return cls(id=_parse_uuid(data["id"]), email=data.get("email"))
        except (KeyError, TypeError, ValueError) as e:
            raise RecordDecodeError(f"user 레코드 디코딩 실패: {e}") from e


# 이체 요청 필수 필드
TRANSFER_REQUIRED_FIELDS: tuple[str, ...] = (
    "sender_account_id",
    "recipient_email",
    "amount",
    "currency",
    "category",
)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


@dataclass(frozen=True)
class TransferRequest:
    """이체 요청 (일시적, 저장하지 않음)

    Attributes:
        sender_account_id: 송신 계좌 ID
        recipient_email: 수신자 이메일
        amount: 금액 (양수)
        currency: 통화 코드
        category: 분류
        description: 설명 (없으면 기본 문구 사용)
    """

    sender_account_id: uuid.UUID
    recipient_email: str
    amount: Decimal
    currency: str
    category: str
    description: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "TransferRequest":
        """JSON 본문에서 생성 (구조 검증)

        Args:
            data: 파싱된 JSON 본문

        Returns:
            TransferRequest

        Raises:
            InvalidRequestError: 필수 필드 누락, 형식 오류, amount <= 0
        """
        if not isinstance(data, dict):
            raise InvalidRequestError("Request body must be a JSON object")

        missing = [name for name in TRANSFER_REQUIRED_FIELDS if _is_missing(data.get(name))]
        if missing:
            raise InvalidRequestError(f"Missing required fields: {', '.join(missing)}")

        try:
            sender_account_id = _parse_uuid(data["sender_account_id"])
        except (TypeError, ValueError):
            raise InvalidRequestError("sender_account_id must be a UUID")

        try:
            amount = parse_amount(data["amount"])
        except ValueError:
            raise InvalidRequestError("amount must be a number")

        if amount <= 0:
            raise InvalidRequestError("amount must be greater than zero")

        recipient_email = data["recipient_email"]
        currency = data["currency"]
        category = data["category"]
        description = data.get("description")

        if not isinstance(recipient_email, str) or "@" not in recipient_email:
            raise InvalidRequestError("recipient_email must be an email address")
        if not isinstance(currency, str) or len(currency.strip()) != 3 or not currency.strip().isalpha():
            raise InvalidRequestError("currency must be a 3-letter code")
        if not isinstance(category, str):
            raise InvalidRequestError("category must be a string")
        if description is not None and not isinstance(description, str):
            raise InvalidRequestError("description must be a string")

        return cls(
            sender_account_id=sender_account_id,
            recipient_email=recipient_email.strip(),
            amount=amount,
            currency=currency.strip(),
            category=category,
            description=description or None,
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON 본문으로 변환"""
        payload: dict[str, Any] = {
            "sender_account_id": str(self.sender_account_id),
            "recipient_email": self.recipient_email,
            "amount": str(self.amount),
            "currency": self.currency,
            "category": self.category,
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class TransferReceipt:
    """이체 성공 영수증 (표시용, 별도 이체 레코드는 생성하지 않음)"""

    amount: Decimal
    currency: str
    recipient_email: str
    message: str = "Transaction successful"

    def to_dict(self) -> dict[str, Any]:
        """응답 본문 변환"""
        return {
            "message": self.message,
            "amount": str(self.amount),
            "currency": self.currency,
            "recipient_email": self.recipient_email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransferReceipt":
        """응답 본문에서 생성"""
        return cls(
            amount=parse_amount(data["amount"]),
            currency=data["currency"],
            recipient_email=data["recipient_email"],
            message=data.get("message", "Transaction successful"),
        )

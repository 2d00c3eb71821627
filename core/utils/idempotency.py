"""
Idempotency 유틸리티

이체 재전송 중복 방지를 위한 결정적 원장 항목 ID 생성.
규칙: uuid5(TRANSFER_NAMESPACE, "{scope}:{idempotency_key}:{side}")

scope는 호출자 ID와 요청 본문(송신 계좌, 수신자, 금액, 통화, 분류, 설명)으로 만든다.
같은 호출자가 같은 본문을 같은 키로 재전송하면 같은 항목 ID가 나오고,
저장소의 PK 유일성 제약이 두 번째 쓰기를 거부한다.
키를 다른 본문이나 다른 호출자가 재사용하면 새 ID가 되어 별도 이체로 기록된다.
"""

import json
import uuid
from decimal import Decimal

from core.types import TransferSide

# 이체 항목 ID 네임스페이스 (고정값, 변경 시 기존 키와 호환 깨짐)
TRANSFER_NAMESPACE: uuid.UUID = uuid.uuid5(uuid.NAMESPACE_URL, "ledgersync:transfer")

# Idempotency-Key 최대 길이
MAX_IDEMPOTENCY_KEY_LENGTH: int = 255


def normalize_idempotency_key(key: str | None) -> str | None:
    """Idempotency-Key 헤더 값 정규화

    Args:
        key: 헤더 원문 (없으면 None)

    Returns:
        앞뒤 공백을 제거한 키 또는 None (비어 있으면)

    Raises:
        ValueError: 허용 길이 초과 또는 출력 불가능한 문자 포함

    Example:
        >>> normalize_idempotency_key("  abc-123 ")
        'abc-123'
        >>> normalize_idempotency_key("   ")
        None
    """
    if key is None:
        return None

    key = key.strip()
    if not key:
        return None

    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValueError(
            f"Idempotency-Key는 {MAX_IDEMPOTENCY_KEY_LENGTH}자를 넘을 수 없습니다"
        )

    if not key.isprintable():
        raise ValueError("Idempotency-Key에 출력 불가능한 문자가 있습니다")

    return key


def make_transfer_scope(
    caller_id: uuid.UUID,
    sender_account_id: uuid.UUID,
    recipient_email: str,
    amount: Decimal,
    currency: str,
    category: str,
    description: str | None,
) -> str:
    """이체 요청 범위 문자열 생성

    호출자와 요청 본문을 정규화해 하나의 문자열로 만든다.
    같은 키라도 호출자나 본문이 다르면 다른 범위가 되어 항목 ID가 달라진다.
    """
    return json.dumps(
        [
            str(caller_id),
            str(sender_account_id),
            recipient_email.strip().lower(),
            format(amount.normalize(), "f"),
            currency,
            category,
            description,
        ],
        ensure_ascii=False,
    )


def make_entry_id(idempotency_key: str, side: TransferSide, scope: str) -> uuid.UUID:
    """결정적 원장 항목 ID 생성

    Args:
        idempotency_key: 정규화된 Idempotency-Key
        side: 쓰기 방향 (SENDER=차변, RECIPIENT=대변)
        scope: make_transfer_scope() 결과

    Returns:
        UUID (동일 입력 → 동일 출력)

    Example:
        >>> make_entry_id("abc", TransferSide.SENDER, scope) == make_entry_id("abc", TransferSide.SENDER, scope)
        True
    """
    if not idempotency_key:
        raise ValueError("idempotency_key는 비어 있을 수 없습니다")

    return uuid.uuid5(TRANSFER_NAMESPACE, f"{scope}:{idempotency_key}:{side.value}")

"""
Change feed 이벤트 도메인 모델

LedgerStore change feed가 보내는 변경 알림을 닫힌 변형(variant)으로 표현.

    ChangeEvent = InsertEvent | UpdateEvent | DeleteEvent

피드 원문(payload) 형식:
    {"kind": "insert" | "update" | "delete",
     "new_record": {...} | None,
     "old_record": {...} | None}

최소 1회(at-least-once) 전달되며 로컬 쓰기와의 상대 순서는 보장되지 않는다.
"""

from dataclasses import dataclass
from typing import Any, assert_never
from uuid import UUID

from core.ledger.models import RecordDecodeError, Transaction
from core.types import ChangeKind


class EventDecodeError(ValueError):
    """피드 payload 디코딩 실패 (기록 후 건너뜀 대상)"""

    pass


@dataclass(frozen=True)
class InsertEvent:
    """행 추가 알림"""

    record: Transaction

    @property
    def transaction_id(self) -> UUID:
        return self.record.id


@dataclass(frozen=True)
class UpdateEvent:
    """행 전체 교체 알림"""

    record: Transaction

    @property
    def transaction_id(self) -> UUID:
        return self.record.id


@dataclass(frozen=True)
class DeleteEvent:
    """행 삭제 알림 (삭제 직전 레코드 포함)"""

    old_record: Transaction

    @property
    def transaction_id(self) -> UUID:
        return self.old_record.id


ChangeEvent = InsertEvent | UpdateEvent | DeleteEvent


def decode_change(payload: dict[str, Any]) -> ChangeEvent:
    """피드 payload를 ChangeEvent로 변환

    Args:
        payload: {kind, new_record?, old_record?}

    Returns:
        InsertEvent / UpdateEvent / DeleteEvent

    Raises:
        EventDecodeError: 알 수 없는 kind, 레코드 누락, 레코드 형식 오류
    """
    if not isinstance(payload, dict):
        raise EventDecodeError(f"payload가 객체가 아닙니다: {type(payload).__name__}")

    try:
        kind = ChangeKind(str(payload.get("kind", "")).lower())
    except ValueError as e:
        raise EventDecodeError(f"알 수 없는 변경 종류: {payload.get('kind')!r}") from e

    field_name = "old_record" if kind == ChangeKind.DELETE else "new_record"
    raw_record = payload.get(field_name)
    if not raw_record:
        raise EventDecodeError(f"{kind.value} 이벤트에 {field_name}가 없습니다")

    try:
        record = Transaction.from_record(raw_record)
    except RecordDecodeError as e:
        raise EventDecodeError(str(e)) from e

    if kind == ChangeKind.INSERT:
        return InsertEvent(record=record)
    elif kind == ChangeKind.UPDATE:
        return UpdateEvent(record=record)
    elif kind == ChangeKind.DELETE:
        return DeleteEvent(old_record=record)
    else:
        assert_never(kind)


def encode_change(event: ChangeEvent) -> dict[str, Any]:
    """ChangeEvent를 피드 payload로 변환 (테스트/Mock 피드용)"""
    if isinstance(event, InsertEvent):
        return {"kind": ChangeKind.INSERT.value, "new_record": event.record.to_record(), "old_record": None}
    elif isinstance(event, UpdateEvent):
        return {"kind": ChangeKind.UPDATE.value, "new_record": event.record.to_record(), "old_record": None}
    elif isinstance(event, DeleteEvent):
        return {"kind": ChangeKind.DELETE.value, "new_record": None, "old_record": event.old_record.to_record()}
    else:
        assert_never(event)

"""
타임존 유틸리티

내부 저장/전송: UTC 원칙 준수를 위한 헬퍼 함수
"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.

    Returns:
        현재 UTC 시간 (tzinfo=timezone.utc)
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """datetime을 UTC 기준으로 정규화

    Args:
        dt: datetime 객체 (naive면 UTC로 간주)

    Returns:
        UTC 타임존의 datetime
    """
    if dt.tzinfo is None:
        # naive datetime은 UTC로 간주
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """ISO-8601 문자열을 UTC datetime으로 변환

    Postgres timestamptz 직렬화 형식("2025-02-10T12:00:00.123456+00:00")과
    JavaScript 형식("2025-02-10T12:00:00.000Z") 모두 허용.

    Args:
        value: ISO-8601 문자열 또는 datetime

    Returns:
        UTC datetime

    Raises:
        ValueError: 파싱 불가능한 형식

    Example:
        >>> parse_timestamp("2025-02-10T12:00:00Z")
        datetime(2025, 2, 10, 12, 0, tzinfo=timezone.utc)
    """
    if isinstance(value, datetime):
        return ensure_utc(value)

    if not isinstance(value, str) or not value:
        raise ValueError(f"타임스탬프 형식이 아닙니다: {value!r}")

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    return ensure_utc(datetime.fromisoformat(text))


def format_timestamp(dt: datetime) -> str:
    """datetime을 ISO-8601 UTC 문자열로 변환

    Args:
        dt: datetime 객체 (naive면 UTC로 간주)

    Returns:
        ISO-8601 문자열 (예: 2025-02-10T12:00:00+00:00)
    """
    return ensure_utc(dt).isoformat()

"""
유틸리티 패키지

idempotency 키 처리, 타임존 처리 등 공통 유틸리티
"""

from core.utils.timezone import (
    now_utc,
    ensure_utc,
    parse_timestamp,
    format_timestamp,
)

__all__ = [
    "now_utc",
    "ensure_utc",
    "parse_timestamp",
    "format_timestamp",
]

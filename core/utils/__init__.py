"""
유틸리티 패키지

idempotency 키 검증, 재시도, 타임존 처리 등 공통 유틸리티
"""

from core.utils.timezone import (
    month_key,
    now_utc,
    parse_utc,
    today_utc,
)

__all__ = [
    "month_key",
    "now_utc",
    "parse_utc",
    "today_utc",
]

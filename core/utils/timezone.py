"""
타임존 유틸리티

내부 저장: UTC 원칙 준수를 위한 헬퍼 함수
"""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.

    Returns:
        현재 UTC 시간 (tzinfo=timezone.utc)
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """현재 UTC 날짜 반환"""
    return now_utc().date()


def parse_utc(value: str) -> datetime:
    """ISO 문자열을 UTC datetime으로 변환

    Args:
        value: ISO 8601 문자열 (naive면 UTC로 간주)

    Returns:
        UTC datetime

    Example:
        >>> parse_utc("2026-02-20T16:00:00")
        datetime(2026, 2, 20, 16, 0, tzinfo=timezone.utc)
    """
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def month_key(d: date) -> str:
    """월 단위 집계 키 (YYYY-MM)"""
    return f"{d.year:04d}-{d.month:02d}"

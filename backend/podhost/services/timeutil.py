"""UTC helpers shared by the feed, play and analytics code."""
from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite hands them back without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def year_month(value: datetime | date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by ``delta`` months, negative going back."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treats naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def year_bounds_utc(now_utc: datetime) -> tuple[datetime, datetime]:
    year_start = datetime(now_utc.year, 1, 1, tzinfo=timezone.utc)
    return year_start, year_start.replace(year=now_utc.year + 1)

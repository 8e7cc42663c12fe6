"""UTC date helpers shared by stats, exports and the directory client."""
from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Literal

LoginStatsRange = Literal["today", "last7days", "lastmonth", "lastyear"]
LOGIN_STATS_RANGES: tuple[str, ...] = ("today", "last7days", "lastmonth", "lastyear")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite returns them naive)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso_z(value: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def months_before(value: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month's length."""
    index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def range_start(range_name: str, now: datetime) -> datetime:
    if range_name == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if range_name == "last7days":
        return now - timedelta(days=7)
    if range_name == "lastmonth":
        return months_before(now, 1)
    if range_name == "lastyear":
        return months_before(now, 12)
    raise ValueError(f"unknown range: {range_name}")


__all__ = [
    "LOGIN_STATS_RANGES",
    "LoginStatsRange",
    "as_utc",
    "iso_z",
    "months_before",
    "range_start",
    "utcnow",
]

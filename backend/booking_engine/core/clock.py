"""Injectable wall clock."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from booking_engine.core.config import get_settings

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current aware UTC timestamp."""
    return datetime.now(UTC)


def coerce_utc(dt: datetime) -> datetime:
    """Treat naive timestamps as UTC (SQLite drops tzinfo on the way back)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def marketplace_today(now: datetime) -> date:
    """Calendar date of ``now`` in the marketplace timezone."""
    tz = ZoneInfo(get_settings().marketplace_timezone)
    return coerce_utc(now).astimezone(tz).date()

"""Boundary normalisation of dates.

Callers may send plain ``YYYY-MM-DD`` dates or full timestamps. Timestamps are
read in the marketplace timezone and truncated to their calendar day; naive
timestamps are taken to already be marketplace-local.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any
from zoneinfo import ZoneInfo

from pydantic import BeforeValidator

from booking_engine.core.config import get_settings


def to_marketplace_date(value: Any) -> Any:
    if isinstance(value, str) and "T" in value:
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(get_settings().marketplace_timezone))
        return value.date()
    return value


CalendarDate = Annotated[date, BeforeValidator(to_marketplace_date)]

__all__ = ["CalendarDate", "to_marketplace_date"]

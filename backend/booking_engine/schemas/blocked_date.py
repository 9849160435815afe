"""Pydantic schemas for owner-blocked dates."""
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.schemas.dates import CalendarDate


class BlockedDatesRequest(BaseModel):
    dates: list[CalendarDate] = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=255)


class UnblockDatesRequest(BaseModel):
    dates: list[CalendarDate] = Field(min_length=1)


class BlockedDateRead(BaseModel):
    id: uuid.UUID
    vehicle_id: uuid.UUID
    blocked_on: date
    reason: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BlockDatesResponse(BaseModel):
    """Outcome of a block request; warnings name overlapping bookings."""

    vehicle_id: uuid.UUID
    created: list[date]
    already_blocked: list[date]
    warnings: list[str] = Field(default_factory=list)
    overlapping_reservation_ids: list[uuid.UUID] = Field(default_factory=list)


class UnblockDatesResponse(BaseModel):
    vehicle_id: uuid.UUID
    removed: int

"""Pydantic schemas for reservations."""
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.models.booking_event import BookingEventType
from booking_engine.models.reservation import ReservationStatus
from booking_engine.schemas.availability import DateWindow


class ReservationCreate(DateWindow):
    """Payload for requesting a reservation."""

    vehicle_id: uuid.UUID


class ReservationRead(BaseModel):
    """Serialized reservation representation."""

    id: uuid.UUID
    vehicle_id: uuid.UUID
    requester_id: uuid.UUID
    start_date: date
    end_date: date
    status: ReservationStatus
    deposit_required: bool
    deposit_paid: bool
    hold_override: bool
    cancellation_reason: str | None = None
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReservationTransitionRequest(BaseModel):
    """Payload for moving a reservation to another status."""

    status: ReservationStatus
    reason: str | None = Field(default=None, max_length=255)


class BookingEventRead(BaseModel):
    id: uuid.UUID
    reservation_id: uuid.UUID | None = None
    vehicle_id: uuid.UUID
    event_type: BookingEventType
    actor_id: uuid.UUID | None = None
    notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

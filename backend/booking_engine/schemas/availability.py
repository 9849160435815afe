"""Pydantic schemas for availability checks."""
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator

from booking_engine.schemas.dates import CalendarDate
from booking_engine.services.calendar_service import DayState
from booking_engine.services.intervals import DateRange


class DateWindow(BaseModel):
    """Half-open ``[start_date, end_date)`` window."""

    start_date: CalendarDate
    end_date: CalendarDate

    @model_validator(mode="after")
    def _check_order(self) -> "DateWindow":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    def to_range(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)


class AvailabilityCheckRequest(DateWindow):
    vehicle_id: uuid.UUID


class AvailabilityCheckResponse(BaseModel):
    vehicle_id: uuid.UUID
    start_date: date
    end_date: date
    available: bool


class BatchAvailabilityRequest(DateWindow):
    """Browse-with-dates request for many vehicles."""

    vehicle_ids: list[uuid.UUID] = Field(min_length=1)


class BatchAvailabilityResponse(BaseModel):
    start_date: date
    end_date: date
    available: dict[uuid.UUID, bool]
    available_vehicle_ids: list[uuid.UUID]
    degraded: bool = False


class CalendarDay(BaseModel):
    """State of a vehicle on a single day."""

    date: date
    state: DayState
    reservation_id: uuid.UUID | None = None
    reason: str | None = None


class VehicleCalendarResponse(BaseModel):
    vehicle_id: uuid.UUID
    days: list[CalendarDay]

    model_config = ConfigDict(from_attributes=True)

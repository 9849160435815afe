"""Per-day occupancy view of a single vehicle."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import Clock, utc_now
from booking_engine.core.errors import BookingValidationError, VehicleNotFound
from booking_engine.models.reservation import ReservationStatus
from booking_engine.services import availability_store
from booking_engine.services.intervals import DateRange, overlaps

MAX_CALENDAR_DAYS = 366


class DayState(str, enum.Enum):
    FREE = "free"
    HELD = "held"
    BOOKED = "booked"
    BLOCKED = "blocked"


async def get_vehicle_calendar(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    window: DateRange,
    clock: Clock = utc_now,
) -> list[dict[str, object]]:
    """Return the state of every day in ``window``.

    A blocked day wins over any reservation on it; a confirmed booking wins
    over a pending hold. Lapsed holds show as free.
    """
    if window.nights > MAX_CALENDAR_DAYS:
        raise BookingValidationError(
            f"Calendar windows are limited to {MAX_CALENDAR_DAYS} days"
        )
    occupancy = await availability_store.load_occupancy(
        session, vehicle_id=vehicle_id, window=window
    )
    if occupancy.vehicle is None:
        raise VehicleNotFound(vehicle_id)

    now = clock()
    hold = availability_store.hold_duration()
    active = [
        reservation
        for reservation in occupancy.reservations
        if availability_store.is_effectively_active(reservation, now=now, hold=hold)
    ]
    blocked = {block.blocked_on: block for block in occupancy.blocks}

    days: list[dict[str, object]] = []
    for day in window.days():
        span = DateRange.single_day(day)
        state = DayState.FREE
        reservation_id = None
        if day in blocked:
            state = DayState.BLOCKED
        else:
            for reservation in active:
                if not overlaps(span, DateRange(reservation.start_date, reservation.end_date)):
                    continue
                reservation_id = reservation.id
                if reservation.status == ReservationStatus.CONFIRMED:
                    state = DayState.BOOKED
                    break
                state = DayState.HELD
        days.append(
            {
                "date": day,
                "state": state,
                "reservation_id": reservation_id,
                "reason": blocked[day].reason if day in blocked else None,
            }
        )
    return days

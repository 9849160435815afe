"""Accept/reject decisions for reservation requests."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import Clock, utc_now
from booking_engine.core.errors import ConflictReason, DateConflict, VehicleNotFound
from booking_engine.models.reservation import Reservation
from booking_engine.services import availability_store
from booking_engine.services.availability_store import Occupancy
from booking_engine.services.intervals import DateRange, overlaps

logger = logging.getLogger(__name__)


def find_conflict(
    occupancy: Occupancy,
    window: DateRange,
    *,
    now: datetime,
    hold: timedelta,
    exclude_reservation_id: uuid.UUID | None = None,
) -> ConflictReason | None:
    """Return why ``window`` cannot be booked, or None when it is free.

    Shared by the single, batch and commit-time paths so they always agree.
    """
    vehicle = occupancy.vehicle
    if vehicle is not None and not vehicle.is_available:
        return ConflictReason.VEHICLE_UNAVAILABLE

    for reservation in occupancy.reservations:
        if reservation.id == exclude_reservation_id:
            continue
        if not availability_store.is_effectively_active(reservation, now=now, hold=hold):
            continue
        if overlaps(window, DateRange(reservation.start_date, reservation.end_date)):
            return ConflictReason.DATE_CONFLICT

    for block in occupancy.blocks:
        if overlaps(window, DateRange.single_day(block.blocked_on)):
            return ConflictReason.DATE_CONFLICT
    return None


def raise_for_conflict(reason: ConflictReason | None, window: DateRange) -> None:
    if reason is None:
        return
    if reason is ConflictReason.VEHICLE_UNAVAILABLE:
        raise DateConflict("Vehicle is not available for rent", reason=reason)
    raise DateConflict(f"Vehicle is not available for {window}", reason=reason)


async def check_availability(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    date_range: DateRange,
    clock: Clock = utc_now,
) -> bool:
    """Point-in-time availability for one vehicle; carries no reservation."""
    occupancy = await availability_store.load_occupancy(
        session, vehicle_id=vehicle_id, window=date_range
    )
    if occupancy.vehicle is None:
        raise VehicleNotFound(vehicle_id)
    reason = find_conflict(
        occupancy,
        date_range,
        now=clock(),
        hold=availability_store.hold_duration(),
    )
    return reason is None


async def request_reservation(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    date_range: DateRange,
    requester_id: uuid.UUID,
    clock: Clock = utc_now,
) -> Reservation:
    """Create a ``pending`` reservation or raise :class:`DateConflict`.

    The check runs against occupancy read under the vehicle lock, inside the
    same transaction as the insert. A conflict is an expected outcome and is
    never retried here; the caller should refresh availability instead.
    """
    hold = availability_store.hold_duration()
    now = clock()

    def admit(occupancy: Occupancy) -> None:
        reason = find_conflict(occupancy, date_range, now=now, hold=hold)
        raise_for_conflict(reason, date_range)

    try:
        reservation = await availability_store.try_reserve(
            session,
            vehicle_id=vehicle_id,
            date_range=date_range,
            requester_id=requester_id,
            admit=admit,
            now=now,
        )
    except DateConflict as exc:
        logger.info(
            "Reservation rejected for vehicle %s %s: %s",
            vehicle_id,
            date_range,
            exc.reason.value,
        )
        raise
    logger.info(
        "Reservation %s created for vehicle %s %s",
        reservation.id,
        vehicle_id,
        date_range,
    )
    return reservation

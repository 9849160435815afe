"""Shop-owner blocked dates."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from booking_engine.core.errors import BookingValidationError, NotAuthorized, VehicleNotFound
from booking_engine.core.security import Actor, ActorRole
from booking_engine.db.session import dialect_name
from booking_engine.models.blocked_date import BlockedDate
from booking_engine.models.booking_event import BookingEventType
from booking_engine.models.reservation import Reservation, ReservationStatus
from booking_engine.models.vehicle import Vehicle
from booking_engine.services import availability_store, booking_event_service
from booking_engine.services.intervals import DateRange, covering_range, overlaps

logger = logging.getLogger(__name__)

MAX_DATES_PER_REQUEST = 366


@dataclass(slots=True)
class BlockResult:
    """Outcome of a block request."""

    created: list[date] = field(default_factory=list)
    already_blocked: list[date] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    overlapping_reservation_ids: list[uuid.UUID] = field(default_factory=list)


def _normalize_dates(dates: Iterable[date]) -> list[date]:
    days = sorted(set(dates))
    if not days:
        raise BookingValidationError("At least one date is required")
    if len(days) > MAX_DATES_PER_REQUEST:
        raise BookingValidationError(
            f"At most {MAX_DATES_PER_REQUEST} dates can be changed at once"
        )
    return days


async def _get_owned_vehicle(
    session: AsyncSession, *, vehicle_id: uuid.UUID, actor: Actor
) -> Vehicle:
    vehicle = (
        await session.execute(
            select(Vehicle).options(selectinload(Vehicle.shop)).where(Vehicle.id == vehicle_id)
        )
    ).scalar_one_or_none()
    if vehicle is None:
        raise VehicleNotFound(vehicle_id)
    if actor.is_staff:
        return vehicle
    if actor.role == ActorRole.SHOP_OWNER and vehicle.shop.owner_id == actor.user_id:
        return vehicle
    raise NotAuthorized("Only the vehicle's shop owner can manage blocked dates")


def _insert_ignoring_duplicates(session: AsyncSession, rows: list[dict[str, object]]):
    dialect = dialect_name(session)
    if dialect == "postgresql":
        return postgresql.insert(BlockedDate).values(rows).on_conflict_do_nothing(
            index_elements=["vehicle_id", "blocked_on"]
        )
    if dialect == "sqlite":
        return sqlite.insert(BlockedDate).values(rows).on_conflict_do_nothing(
            index_elements=["vehicle_id", "blocked_on"]
        )
    return insert(BlockedDate).values(rows)


async def list_blocked_dates(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    window: DateRange | None = None,
) -> Sequence[BlockedDate]:
    stmt = select(BlockedDate).where(BlockedDate.vehicle_id == vehicle_id)
    if window is not None:
        stmt = stmt.where(
            BlockedDate.blocked_on >= window.start, BlockedDate.blocked_on < window.end
        )
    async with availability_store.storage_guard("list_blocked_dates"):
        result = await session.execute(stmt.order_by(BlockedDate.blocked_on))
        return result.scalars().all()


async def block_dates(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    dates: Iterable[date],
    actor: Actor,
    reason: str | None = None,
) -> BlockResult:
    """Mark days unavailable for a vehicle.

    Idempotent per (vehicle, day). Confirmed bookings overlapping a blocked day
    are left in place and reported back as warnings.
    """
    days = _normalize_dates(dates)
    result = BlockResult()
    async with availability_store.storage_guard("block_dates"):
        try:
            vehicle = await _get_owned_vehicle(session, vehicle_id=vehicle_id, actor=actor)
            await availability_store.lock_vehicle(session, vehicle.id)
            existing = set(
                (
                    await session.execute(
                        select(BlockedDate.blocked_on).where(
                            BlockedDate.vehicle_id == vehicle.id,
                            BlockedDate.blocked_on.in_(days),
                        )
                    )
                ).scalars()
            )
            missing = [day for day in days if day not in existing]
            if missing:
                await session.execute(
                    _insert_ignoring_duplicates(
                        session,
                        [
                            {
                                "id": uuid.uuid4(),
                                "vehicle_id": vehicle.id,
                                "blocked_on": day,
                                "reason": reason,
                                "created_by": actor.user_id,
                            }
                            for day in missing
                        ],
                    )
                )
                booking_event_service.add_event(
                    session,
                    vehicle_id=vehicle.id,
                    event_type=BookingEventType.DATES_BLOCKED,
                    actor_id=actor.user_id,
                    notes=", ".join(day.isoformat() for day in missing),
                )
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        result.created = missing
        result.already_blocked = sorted(existing)

        span = covering_range(days)
        confirmed = (
            await session.execute(
                select(Reservation).where(
                    Reservation.vehicle_id == vehicle_id,
                    Reservation.status == ReservationStatus.CONFIRMED,
                    Reservation.start_date < span.end,
                    Reservation.end_date > span.start,
                )
            )
        ).scalars().all()

    for reservation in confirmed:
        booked = DateRange(reservation.start_date, reservation.end_date)
        clashes = [day for day in days if overlaps(booked, DateRange.single_day(day))]
        if clashes:
            result.overlapping_reservation_ids.append(reservation.id)
            result.warnings.append(
                f"Confirmed reservation {reservation.id} overlaps blocked "
                f"date(s) {', '.join(day.isoformat() for day in clashes)}"
            )
    if result.warnings:
        logger.warning(
            "Blocked dates on vehicle %s overlap %d confirmed reservation(s)",
            vehicle_id,
            len(result.overlapping_reservation_ids),
        )
    return result


async def unblock_dates(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    dates: Iterable[date],
    actor: Actor,
) -> int:
    """Remove blocked days; days that were not blocked are ignored."""
    days = _normalize_dates(dates)
    async with availability_store.storage_guard("unblock_dates"):
        try:
            vehicle = await _get_owned_vehicle(session, vehicle_id=vehicle_id, actor=actor)
            result = await session.execute(
                delete(BlockedDate).where(
                    BlockedDate.vehicle_id == vehicle.id,
                    BlockedDate.blocked_on.in_(days),
                )
            )
            removed = result.rowcount or 0
            if removed:
                booking_event_service.add_event(
                    session,
                    vehicle_id=vehicle.id,
                    event_type=BookingEventType.DATES_UNBLOCKED,
                    actor_id=actor.user_id,
                    notes=", ".join(day.isoformat() for day in days),
                )
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
    return removed

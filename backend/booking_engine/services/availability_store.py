"""Storage adapter for vehicle occupancy.

Every function here is an I/O boundary: it talks to the database through the
given session, bounded by ``STORAGE_TIMEOUT_SECONDS``. Timeouts and driver
failures surface as :class:`StorageError`; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import Select, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from booking_engine.core.clock import coerce_utc
from booking_engine.core.config import get_settings
from booking_engine.core.errors import DateConflict, StorageError, VehicleNotFound
from booking_engine.models.blocked_date import BlockedDate
from booking_engine.models.booking_event import BookingEventType
from booking_engine.models.reservation import Reservation, ReservationStatus
from booking_engine.models.vehicle import Vehicle
from booking_engine.services import booking_event_service
from booking_engine.services.intervals import DateRange

logger = logging.getLogger(__name__)

OCCUPYING_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


@dataclass(slots=True)
class Occupancy:
    """Committed reservations and blocks touching a window for one vehicle."""

    vehicle_id: uuid.UUID
    vehicle: Vehicle | None
    reservations: list[Reservation] = field(default_factory=list)
    blocks: list[BlockedDate] = field(default_factory=list)


def hold_duration() -> timedelta:
    """How long an unconfirmed reservation keeps its dates."""
    return timedelta(minutes=get_settings().pending_hold_minutes)


def is_effectively_active(
    reservation: Reservation, *, now: datetime, hold: timedelta
) -> bool:
    """Whether the reservation currently occupies the vehicle's calendar.

    Pending holds lapse lazily: once older than ``hold`` they stop occupying
    even though the row still says ``pending``.
    """
    if reservation.status == ReservationStatus.CONFIRMED:
        return True
    if reservation.status != ReservationStatus.PENDING:
        return False
    if reservation.hold_override:
        return True
    return coerce_utc(now) - coerce_utc(reservation.created_at) < hold


@asynccontextmanager
async def storage_guard(operation: str) -> AsyncIterator[None]:
    """Bound a storage interaction by the configured timeout."""
    timeout = get_settings().storage_timeout_seconds
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as exc:
        logger.warning("%s timed out after %.1fs", operation, timeout)
        raise StorageError(f"{operation} timed out") from exc
    except IntegrityError:
        raise
    except DBAPIError as exc:
        logger.exception("%s failed: %s", operation, exc.__class__.__name__)
        raise StorageError(f"{operation} failed") from exc


def _reservations_stmt(
    vehicle_ids: Iterable[uuid.UUID], window: DateRange
) -> Select[tuple[Reservation]]:
    # Narrowing only; the in-memory overlap predicate makes the decision.
    return (
        select(Reservation)
        .where(
            Reservation.vehicle_id.in_(list(vehicle_ids)),
            Reservation.status.in_(OCCUPYING_STATUSES),
            Reservation.start_date < window.end,
            Reservation.end_date > window.start,
        )
        .order_by(Reservation.start_date)
        .execution_options(populate_existing=True)
    )


def _blocks_stmt(
    vehicle_ids: Iterable[uuid.UUID], window: DateRange
) -> Select[tuple[BlockedDate]]:
    return (
        select(BlockedDate)
        .where(
            BlockedDate.vehicle_id.in_(list(vehicle_ids)),
            BlockedDate.blocked_on >= window.start,
            BlockedDate.blocked_on < window.end,
        )
        .order_by(BlockedDate.blocked_on)
        .execution_options(populate_existing=True)
    )


def _vehicles_stmt(vehicle_ids: Iterable[uuid.UUID]) -> Select[tuple[Vehicle]]:
    return (
        select(Vehicle)
        .options(selectinload(Vehicle.shop))
        .where(Vehicle.id.in_(list(vehicle_ids)))
        .execution_options(populate_existing=True)
    )


async def _fetch_occupancy(
    session: AsyncSession, vehicle_ids: list[uuid.UUID], window: DateRange
) -> dict[uuid.UUID, Occupancy]:
    vehicles = (await session.execute(_vehicles_stmt(vehicle_ids))).scalars().all()
    by_id = {vid: Occupancy(vehicle_id=vid, vehicle=None) for vid in vehicle_ids}
    for vehicle in vehicles:
        by_id[vehicle.id].vehicle = vehicle
    known = [vehicle.id for vehicle in vehicles]
    if not known:
        return by_id

    reservations = (await session.execute(_reservations_stmt(known, window))).scalars()
    for reservation in reservations:
        by_id[reservation.vehicle_id].reservations.append(reservation)
    blocks = (await session.execute(_blocks_stmt(known, window))).scalars()
    for block in blocks:
        by_id[block.vehicle_id].blocks.append(block)
    return by_id


async def load_occupancy(
    session: AsyncSession, *, vehicle_id: uuid.UUID, window: DateRange
) -> Occupancy:
    """Load one vehicle's occupants over ``window``."""
    async with storage_guard("load_occupancy"):
        occupancy = await _fetch_occupancy(session, [vehicle_id], window)
    return occupancy[vehicle_id]


async def load_occupancy_batch(
    session: AsyncSession, *, vehicle_ids: Iterable[uuid.UUID], window: DateRange
) -> dict[uuid.UUID, Occupancy]:
    """Load occupants for many vehicles with a fixed number of queries.

    Unknown ids are kept in the result with ``vehicle=None``.
    """
    ids = list(dict.fromkeys(vehicle_ids))
    if not ids:
        return {}
    async with storage_guard("load_occupancy_batch"):
        return await _fetch_occupancy(session, ids, window)


async def lock_vehicle(session: AsyncSession, vehicle_id: uuid.UUID) -> Vehicle:
    """Take the per-vehicle write lock for the current transaction.

    Bumping ``lock_version`` row-locks the vehicle on PostgreSQL and takes the
    database write lock on SQLite, so concurrent writers for the same vehicle
    queue here and read each other's committed rows afterwards.
    """
    result = await session.execute(
        update(Vehicle)
        .where(Vehicle.id == vehicle_id)
        .values(lock_version=Vehicle.lock_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise VehicleNotFound(vehicle_id)
    vehicle = (await session.execute(_vehicles_stmt([vehicle_id]))).scalar_one()
    return vehicle


async def load_locked_occupancy(
    session: AsyncSession, *, vehicle: Vehicle, window: DateRange
) -> Occupancy:
    """Occupancy read inside a transaction that already holds the vehicle lock."""
    occupancy = Occupancy(vehicle_id=vehicle.id, vehicle=vehicle)
    occupancy.reservations.extend(
        (await session.execute(_reservations_stmt([vehicle.id], window))).scalars()
    )
    occupancy.blocks.extend(
        (await session.execute(_blocks_stmt([vehicle.id], window))).scalars()
    )
    return occupancy


async def try_reserve(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    date_range: DateRange,
    requester_id: uuid.UUID,
    admit: Callable[[Occupancy], None],
    now: datetime,
) -> Reservation:
    """Atomically check and insert a ``pending`` reservation.

    Lock, read, decide and insert run in one transaction. ``admit`` receives
    the occupancy read under the lock and raises to refuse. ``now`` stamps the
    row and starts its hold. A constraint violation at write time means
    another writer got there first and is reported as :class:`DateConflict`.
    """
    async with storage_guard("try_reserve"):
        try:
            vehicle = await lock_vehicle(session, vehicle_id)
            occupancy = await load_locked_occupancy(
                session, vehicle=vehicle, window=date_range
            )
            admit(occupancy)

            reservation = Reservation(
                vehicle_id=vehicle.id,
                requester_id=requester_id,
                start_date=date_range.start,
                end_date=date_range.end,
                status=ReservationStatus.PENDING,
                deposit_required=vehicle.shop.requires_deposit,
                created_at=coerce_utc(now),
                updated_at=coerce_utc(now),
            )
            session.add(reservation)
            await session.flush()
            booking_event_service.add_event(
                session,
                vehicle_id=vehicle.id,
                reservation_id=reservation.id,
                event_type=BookingEventType.CREATED,
                actor_id=requester_id,
                notes=f"Requested {date_range}",
            )
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            raise DateConflict() from exc
        except BaseException:
            await session.rollback()
            raise
    return reservation


async def get_reservation(
    session: AsyncSession, reservation_id: uuid.UUID
) -> Reservation | None:
    """Fetch a reservation by id with its vehicle and shop loaded."""
    async with storage_guard("get_reservation"):
        result = await session.execute(
            select(Reservation)
            .options(selectinload(Reservation.vehicle).selectinload(Vehicle.shop))
            .where(Reservation.id == reservation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

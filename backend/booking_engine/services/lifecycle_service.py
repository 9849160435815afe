"""Reservation status transitions.

``pending`` -> ``confirmed`` -> ``completed``, and ``pending``/``confirmed`` ->
``cancelled``. ``completed`` and ``cancelled`` are terminal. Every change runs
under the vehicle lock and is committed together with its history entry.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from booking_engine.core.clock import Clock, coerce_utc, marketplace_today, utc_now
from booking_engine.core.config import get_settings
from booking_engine.core.errors import (
    DepositRequired,
    NotAuthorized,
    ReservationNotFound,
    TransitionError,
)
from booking_engine.core.security import Actor, ActorRole
from booking_engine.models.booking_event import BookingEventType
from booking_engine.models.reservation import Reservation, ReservationStatus
from booking_engine.models.vehicle import Vehicle
from booking_engine.services import (
    availability_store,
    booking_event_service,
    conflict_resolver,
)
from booking_engine.services.intervals import DateRange

logger = logging.getLogger(__name__)

CancellationPolicy = Callable[[Reservation, datetime], bool]

HOLD_EXPIRED_REASON = "Hold expired"

_ALLOWED_STATUS_TRANSITIONS: dict[ReservationStatus, set[ReservationStatus]] = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    },
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}

_EVENT_FOR_STATUS = {
    ReservationStatus.CONFIRMED: BookingEventType.CONFIRMED,
    ReservationStatus.COMPLETED: BookingEventType.COMPLETED,
    ReservationStatus.CANCELLED: BookingEventType.CANCELLED,
}


def default_cancellation_policy(reservation: Reservation, now: datetime) -> bool:
    """Customers may drop an unpaid hold at any time, and a confirmed booking
    only until ``CUSTOMER_CANCELLATION_CUTOFF_HOURS`` before pickup day starts
    in the marketplace timezone."""
    if reservation.status == ReservationStatus.PENDING:
        return True
    settings = get_settings()
    pickup = datetime.combine(
        reservation.start_date, time.min, tzinfo=ZoneInfo(settings.marketplace_timezone)
    )
    cutoff = pickup - timedelta(hours=settings.customer_cancellation_cutoff_hours)
    return coerce_utc(now) <= cutoff


def _validate_status_transition(current: ReservationStatus, target: ReservationStatus) -> None:
    allowed = _ALLOWED_STATUS_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise TransitionError(
            f"Invalid status transition from {current.value} to {target.value}"
        )


def _ensure_shop_authority(actor: Actor, reservation: Reservation) -> None:
    if actor.is_staff:
        return
    if (
        actor.role == ActorRole.SHOP_OWNER
        and reservation.vehicle.shop.owner_id == actor.user_id
    ):
        return
    raise NotAuthorized("Only the shop owner or an admin can do this")


def _ensure_transition_authority(
    actor: Actor, reservation: Reservation, target: ReservationStatus
) -> None:
    if target == ReservationStatus.CANCELLED and actor.role == ActorRole.CUSTOMER:
        if reservation.requester_id != actor.user_id:
            raise NotAuthorized("Customers can only cancel their own reservations")
        return
    _ensure_shop_authority(actor, reservation)


async def _get_locked_reservation(
    session: AsyncSession, reservation_id: uuid.UUID
) -> Reservation:
    vehicle_id = (
        await session.execute(
            select(Reservation.vehicle_id).where(Reservation.id == reservation_id)
        )
    ).scalar_one_or_none()
    if vehicle_id is None:
        raise ReservationNotFound(reservation_id)
    await availability_store.lock_vehicle(session, vehicle_id)
    result = await session.execute(
        select(Reservation)
        .options(selectinload(Reservation.vehicle).selectinload(Vehicle.shop))
        .where(Reservation.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _ensure_dates_still_free(
    session: AsyncSession, reservation: Reservation, *, now: datetime
) -> None:
    """Re-run the conflict check for a hold that has already lapsed."""
    hold = availability_store.hold_duration()
    if availability_store.is_effectively_active(reservation, now=now, hold=hold):
        return
    window = DateRange(reservation.start_date, reservation.end_date)
    occupancy = await availability_store.load_locked_occupancy(
        session, vehicle=reservation.vehicle, window=window
    )
    reason = conflict_resolver.find_conflict(
        occupancy, window, now=now, hold=hold, exclude_reservation_id=reservation.id
    )
    conflict_resolver.raise_for_conflict(reason, window)


async def _apply_transition(
    session: AsyncSession,
    reservation: Reservation,
    *,
    target: ReservationStatus,
    actor: Actor,
    now: datetime,
    policy: CancellationPolicy,
    reason: str | None,
) -> None:
    _ensure_transition_authority(actor, reservation, target)
    if target == ReservationStatus.CONFIRMED:
        if reservation.deposit_required and not reservation.deposit_paid:
            raise DepositRequired("A deposit must be paid before confirmation")
        await _ensure_dates_still_free(session, reservation, now=now)
        reservation.confirmed_at = now
    elif target == ReservationStatus.COMPLETED:
        if marketplace_today(now) < reservation.end_date:
            raise TransitionError("Reservation cannot be completed before its end date")
        reservation.completed_at = now
    elif target == ReservationStatus.CANCELLED:
        if actor.role == ActorRole.CUSTOMER and not policy(reservation, now):
            raise TransitionError("The cancellation window for this reservation has closed")
        reservation.cancelled_at = now
        reservation.cancellation_reason = reason or f"Cancelled by {actor.role.value}"
    reservation.status = target


async def transition_reservation(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    target: ReservationStatus,
    actor: Actor,
    reason: str | None = None,
    clock: Clock = utc_now,
    cancellation_policy: CancellationPolicy | None = None,
) -> Reservation:
    """Move a reservation to ``target`` or raise.

    Requesting the current status again is a no-op for an actor who could
    have made the change. A cancelled reservation
    stops occupying its dates as soon as this commits.
    """
    policy = cancellation_policy or default_cancellation_policy
    async with availability_store.storage_guard("transition_reservation"):
        try:
            reservation = await _get_locked_reservation(session, reservation_id)
            if reservation.status == target:
                _ensure_transition_authority(actor, reservation, target)
                await session.commit()
                return reservation
            _validate_status_transition(reservation.status, target)
            previous = reservation.status
            await _apply_transition(
                session,
                reservation,
                target=target,
                actor=actor,
                now=clock(),
                policy=policy,
                reason=reason,
            )
            booking_event_service.add_event(
                session,
                vehicle_id=reservation.vehicle_id,
                reservation_id=reservation.id,
                event_type=_EVENT_FOR_STATUS[target],
                actor_id=actor.user_id,
                notes=reason or f"{previous.value} -> {target.value}",
            )
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
    logger.info(
        "Reservation %s moved %s -> %s by %s",
        reservation.id,
        previous.value,
        target.value,
        actor.role.value,
    )
    return reservation


async def mark_deposit_paid(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    actor: Actor,
) -> Reservation:
    """Record that the external payment flow captured the deposit."""
    async with availability_store.storage_guard("mark_deposit_paid"):
        try:
            reservation = await _get_locked_reservation(session, reservation_id)
            _ensure_shop_authority(actor, reservation)
            if reservation.status not in availability_store.OCCUPYING_STATUSES:
                raise TransitionError(
                    f"Cannot record a deposit on a {reservation.status.value} reservation"
                )
            if reservation.deposit_paid:
                await session.commit()
                return reservation
            reservation.deposit_paid = True
            booking_event_service.add_event(
                session,
                vehicle_id=reservation.vehicle_id,
                reservation_id=reservation.id,
                event_type=BookingEventType.DEPOSIT_PAID,
                actor_id=actor.user_id,
            )
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
    return reservation


async def override_hold_expiry(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    actor: Actor,
    clock: Clock = utc_now,
) -> Reservation:
    """Keep an unpaid ``pending`` reservation holding its dates indefinitely."""
    async with availability_store.storage_guard("override_hold_expiry"):
        try:
            reservation = await _get_locked_reservation(session, reservation_id)
            _ensure_shop_authority(actor, reservation)
            if reservation.status != ReservationStatus.PENDING:
                raise TransitionError("Only pending reservations have a hold to override")
            if reservation.hold_override:
                await session.commit()
                return reservation
            await _ensure_dates_still_free(session, reservation, now=clock())
            reservation.hold_override = True
            booking_event_service.add_event(
                session,
                vehicle_id=reservation.vehicle_id,
                reservation_id=reservation.id,
                event_type=BookingEventType.HOLD_OVERRIDE,
                actor_id=actor.user_id,
                notes="Hold expiry overridden by shop",
            )
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
    return reservation


async def expire_stale_holds(
    session: AsyncSession,
    *,
    clock: Clock = utc_now,
    limit: int = 500,
) -> int:
    """Flip lapsed ``pending`` holds to ``cancelled``.

    Housekeeping only: availability already ignores lapsed holds. Each row is
    updated conditionally so a confirmation that lands first is left alone.
    """
    now = clock()
    hold = availability_store.hold_duration()
    cutoff = coerce_utc(now) - hold
    async with availability_store.storage_guard("expire_stale_holds"):
        try:
            candidates = (
                await session.execute(
                    select(Reservation)
                    .where(
                        Reservation.status == ReservationStatus.PENDING,
                        Reservation.hold_override.is_(False),
                        Reservation.created_at < cutoff,
                    )
                    .order_by(Reservation.created_at)
                    .limit(limit)
                )
            ).scalars().all()
            expired = 0
            for reservation in candidates:
                if availability_store.is_effectively_active(reservation, now=now, hold=hold):
                    continue
                result = await session.execute(
                    update(Reservation)
                    .where(
                        Reservation.id == reservation.id,
                        Reservation.status == ReservationStatus.PENDING,
                        Reservation.hold_override.is_(False),
                    )
                    .values(
                        status=ReservationStatus.CANCELLED,
                        cancelled_at=now,
                        cancellation_reason=HOLD_EXPIRED_REASON,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    continue
                booking_event_service.add_event(
                    session,
                    vehicle_id=reservation.vehicle_id,
                    reservation_id=reservation.id,
                    event_type=BookingEventType.HOLD_EXPIRED,
                    notes=HOLD_EXPIRED_REASON,
                )
                expired += 1
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
    if expired:
        logger.info("Expired %d stale pending hold(s)", expired)
    return expired

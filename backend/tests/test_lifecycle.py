"""Reservation status transitions and their guards."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta

import pytest

from booking_engine.core.clock import utc_now
from booking_engine.core.errors import (
    DateConflict,
    DepositRequired,
    NotAuthorized,
    ReservationNotFound,
    TransitionError,
)
from booking_engine.core.security import SYSTEM_ACTOR, Actor, ActorRole
from booking_engine.models import BookingEventType, Reservation, ReservationStatus
from booking_engine.services import (
    availability_store,
    booking_event_service,
    conflict_resolver,
    lifecycle_service,
)
from booking_engine.services.intervals import DateRange

pytestmark = pytest.mark.asyncio

WINDOW = DateRange(date(2030, 6, 10), date(2030, 6, 15))
ADMIN = Actor(user_id=uuid.uuid4(), role=ActorRole.ADMIN)


async def _reserve(
    fleet: dict[str, object],
    *,
    requester: Actor | None = None,
    vehicle_key: str = "vehicle_id",
    window: DateRange = WINDOW,
    clock=utc_now,
) -> Reservation:
    requester_id = requester.user_id if requester else uuid.uuid4()
    async with fleet["sessionmaker"]() as session:
        return await conflict_resolver.request_reservation(
            session,
            vehicle_id=fleet[vehicle_key],
            date_range=window,
            requester_id=requester_id,
            clock=clock,
        )


async def _transition(
    fleet: dict[str, object],
    reservation_id: uuid.UUID,
    target: ReservationStatus,
    actor: Actor,
    *,
    clock=utc_now,
) -> Reservation:
    async with fleet["sessionmaker"]() as session:
        return await lifecycle_service.transition_reservation(
            session,
            reservation_id=reservation_id,
            target=target,
            actor=actor,
            clock=clock,
        )


async def _reload(fleet: dict[str, object], reservation_id: uuid.UUID) -> Reservation:
    async with fleet["sessionmaker"]() as session:
        reservation = await availability_store.get_reservation(session, reservation_id)
    assert reservation is not None
    return reservation


async def test_full_lifecycle_records_history(fleet: dict[str, object], owner: Actor) -> None:
    reservation = await _reserve(fleet)
    after_return = lambda: datetime(2030, 6, 16, 2, 0, tzinfo=UTC)  # noqa: E731

    confirmed = await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, owner)
    assert confirmed.status == ReservationStatus.CONFIRMED
    assert confirmed.confirmed_at is not None

    completed = await _transition(
        fleet, reservation.id, ReservationStatus.COMPLETED, owner, clock=after_return
    )
    assert completed.status == ReservationStatus.COMPLETED

    async with fleet["sessionmaker"]() as session:
        events = await booking_event_service.list_reservation_events(
            session, reservation_id=reservation.id
        )
    assert [event.event_type for event in events] == [
        BookingEventType.CREATED,
        BookingEventType.CONFIRMED,
        BookingEventType.COMPLETED,
    ]


async def test_deposit_required_blocks_confirmation(fleet: dict[str, object]) -> None:
    deposit_owner = Actor(user_id=fleet["deposit_owner_id"], role=ActorRole.SHOP_OWNER)
    reservation = await _reserve(fleet, vehicle_key="deposit_vehicle_id")
    assert reservation.deposit_required is True

    with pytest.raises(DepositRequired):
        await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, deposit_owner)
    assert (await _reload(fleet, reservation.id)).status == ReservationStatus.PENDING

    async with fleet["sessionmaker"]() as session:
        paid = await lifecycle_service.mark_deposit_paid(
            session, reservation_id=reservation.id, actor=SYSTEM_ACTOR
        )
    assert paid.deposit_paid is True

    confirmed = await _transition(
        fleet, reservation.id, ReservationStatus.CONFIRMED, deposit_owner
    )
    assert confirmed.status == ReservationStatus.CONFIRMED


@pytest.mark.parametrize(
    ("path", "illegal"),
    [
        ([], ReservationStatus.COMPLETED),
        ([ReservationStatus.CANCELLED], ReservationStatus.CONFIRMED),
        ([ReservationStatus.CANCELLED], ReservationStatus.PENDING),
        ([ReservationStatus.CONFIRMED], ReservationStatus.PENDING),
    ],
)
async def test_illegal_transitions_are_rejected(
    fleet: dict[str, object],
    path: list[ReservationStatus],
    illegal: ReservationStatus,
) -> None:
    reservation = await _reserve(fleet)
    for step in path:
        await _transition(fleet, reservation.id, step, ADMIN)

    with pytest.raises(TransitionError):
        await _transition(fleet, reservation.id, illegal, ADMIN)


async def test_completed_reservation_is_terminal(fleet: dict[str, object]) -> None:
    reservation = await _reserve(fleet)
    after_return = lambda: datetime(2030, 6, 20, tzinfo=UTC)  # noqa: E731
    await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, ADMIN)
    await _transition(
        fleet, reservation.id, ReservationStatus.COMPLETED, ADMIN, clock=after_return
    )

    with pytest.raises(TransitionError):
        await _transition(
            fleet, reservation.id, ReservationStatus.CANCELLED, ADMIN, clock=after_return
        )


async def test_repeating_current_status_is_a_no_op(fleet: dict[str, object]) -> None:
    reservation = await _reserve(fleet)
    await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, ADMIN)

    again = await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, ADMIN)

    assert again.status == ReservationStatus.CONFIRMED
    async with fleet["sessionmaker"]() as session:
        events = await booking_event_service.list_reservation_events(
            session, reservation_id=reservation.id
        )
    assert len(events) == 2


async def test_completion_waits_for_end_date(fleet: dict[str, object]) -> None:
    reservation = await _reserve(fleet)
    await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, ADMIN)
    # 23:00 on the 14th in Manila, the last rental day.
    last_rental_day = lambda: datetime(2030, 6, 14, 15, 0, tzinfo=UTC)  # noqa: E731

    with pytest.raises(TransitionError):
        await _transition(
            fleet,
            reservation.id,
            ReservationStatus.COMPLETED,
            ADMIN,
            clock=last_rental_day,
        )


async def test_customers_cannot_confirm(
    fleet: dict[str, object], customer: Actor
) -> None:
    reservation = await _reserve(fleet, requester=customer)

    with pytest.raises(NotAuthorized):
        await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, customer)


async def test_other_shop_owner_cannot_confirm(fleet: dict[str, object]) -> None:
    reservation = await _reserve(fleet)
    stranger = Actor(user_id=fleet["deposit_owner_id"], role=ActorRole.SHOP_OWNER)

    with pytest.raises(NotAuthorized):
        await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, stranger)


async def test_repeated_status_still_checks_authority(
    fleet: dict[str, object], owner: Actor
) -> None:
    reservation = await _reserve(fleet)
    await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, owner)
    stranger = Actor(user_id=fleet["deposit_owner_id"], role=ActorRole.SHOP_OWNER)

    with pytest.raises(NotAuthorized):
        await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, stranger)
    with pytest.raises(NotAuthorized):
        await _transition(fleet, reservation.id, ReservationStatus.COMPLETED, stranger)


async def test_customer_cancellation_window(
    fleet: dict[str, object], customer: Actor, owner: Actor
) -> None:
    reservation = await _reserve(fleet, requester=customer)
    await _transition(fleet, reservation.id, ReservationStatus.CONFIRMED, owner)
    # Pickup day starts 2030-06-10 00:00 Manila (2030-06-09 16:00 UTC); the
    # 24 hour cutoff is therefore 2030-06-08 16:00 UTC.
    too_late = lambda: datetime(2030, 6, 8, 17, 0, tzinfo=UTC)  # noqa: E731
    in_time = lambda: datetime(2030, 6, 8, 15, 0, tzinfo=UTC)  # noqa: E731

    with pytest.raises(TransitionError):
        await _transition(
            fleet, reservation.id, ReservationStatus.CANCELLED, customer, clock=too_late
        )
    cancelled = await _transition(
        fleet, reservation.id, ReservationStatus.CANCELLED, customer, clock=in_time
    )
    assert cancelled.status == ReservationStatus.CANCELLED
    assert cancelled.cancelled_at is not None


async def test_customer_cannot_cancel_someone_elses_booking(
    fleet: dict[str, object], customer: Actor
) -> None:
    reservation = await _reserve(fleet)

    with pytest.raises(NotAuthorized):
        await _transition(fleet, reservation.id, ReservationStatus.CANCELLED, customer)


async def test_custom_cancellation_policy_is_honoured(
    fleet: dict[str, object], customer: Actor
) -> None:
    reservation = await _reserve(fleet, requester=customer)

    async with fleet["sessionmaker"]() as session:
        with pytest.raises(TransitionError):
            await lifecycle_service.transition_reservation(
                session,
                reservation_id=reservation.id,
                target=ReservationStatus.CANCELLED,
                actor=customer,
                cancellation_policy=lambda reservation, now: False,
            )


async def test_confirming_lapsed_hold_rechecks_dates(fleet: dict[str, object]) -> None:
    stale = await _reserve(fleet)
    an_hour_later = lambda: utc_now() + timedelta(hours=1)  # noqa: E731
    fresh = await _reserve(fleet, clock=an_hour_later)

    with pytest.raises(DateConflict):
        await _transition(
            fleet, stale.id, ReservationStatus.CONFIRMED, ADMIN, clock=an_hour_later
        )
    confirmed = await _transition(
        fleet, fresh.id, ReservationStatus.CONFIRMED, ADMIN, clock=an_hour_later
    )
    assert confirmed.status == ReservationStatus.CONFIRMED


async def test_hold_override_keeps_dates_held(fleet: dict[str, object], owner: Actor) -> None:
    reservation = await _reserve(fleet)
    async with fleet["sessionmaker"]() as session:
        overridden = await lifecycle_service.override_hold_expiry(
            session, reservation_id=reservation.id, actor=owner
        )
    assert overridden.hold_override is True

    next_day = lambda: utc_now() + timedelta(days=1)  # noqa: E731
    async with fleet["sessionmaker"]() as session:
        available = await conflict_resolver.check_availability(
            session, vehicle_id=fleet["vehicle_id"], date_range=WINDOW, clock=next_day
        )
        expired = await lifecycle_service.expire_stale_holds(session, clock=next_day)
    assert available is False
    assert expired == 0


async def test_hold_override_requires_shop_authority(
    fleet: dict[str, object], customer: Actor
) -> None:
    reservation = await _reserve(fleet, requester=customer)
    async with fleet["sessionmaker"]() as session:
        with pytest.raises(NotAuthorized):
            await lifecycle_service.override_hold_expiry(
                session, reservation_id=reservation.id, actor=customer
            )


async def test_expire_stale_holds_cancels_only_lapsed_pending(
    fleet: dict[str, object], owner: Actor
) -> None:
    lapsed = await _reserve(fleet)
    overridden = await _reserve(fleet, window=DateRange(date(2030, 8, 1), date(2030, 8, 3)))
    async with fleet["sessionmaker"]() as session:
        await lifecycle_service.override_hold_expiry(
            session, reservation_id=overridden.id, actor=owner
        )
    confirmed = await _reserve(fleet, window=DateRange(date(2030, 9, 1), date(2030, 9, 3)))
    await _transition(fleet, confirmed.id, ReservationStatus.CONFIRMED, owner)
    an_hour_later = lambda: utc_now() + timedelta(hours=1)  # noqa: E731
    fresh = await _reserve(
        fleet, window=DateRange(date(2030, 10, 1), date(2030, 10, 3)), clock=an_hour_later
    )

    async with fleet["sessionmaker"]() as session:
        expired = await lifecycle_service.expire_stale_holds(
            session, clock=lambda: utc_now() + timedelta(minutes=31)
        )

    assert expired == 1
    cancelled = await _reload(fleet, lapsed.id)
    assert cancelled.status == ReservationStatus.CANCELLED
    assert cancelled.cancellation_reason == lifecycle_service.HOLD_EXPIRED_REASON
    assert (await _reload(fleet, overridden.id)).status == ReservationStatus.PENDING
    assert (await _reload(fleet, confirmed.id)).status == ReservationStatus.CONFIRMED
    assert (await _reload(fleet, fresh.id)).status == ReservationStatus.PENDING

    async with fleet["sessionmaker"]() as session:
        events = await booking_event_service.list_reservation_events(
            session, reservation_id=lapsed.id
        )
    assert events[-1].event_type == BookingEventType.HOLD_EXPIRED


async def test_unknown_reservation_raises_not_found(fleet: dict[str, object]) -> None:
    with pytest.raises(ReservationNotFound):
        await _transition(fleet, uuid.uuid4(), ReservationStatus.CONFIRMED, ADMIN)

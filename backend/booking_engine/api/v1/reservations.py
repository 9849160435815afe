"""Reservation lifecycle API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api import deps
from booking_engine.api.errors import to_http_exception
from booking_engine.core.clock import Clock
from booking_engine.core.errors import BookingError, ReservationNotFound
from booking_engine.core.security import Actor, ActorRole
from booking_engine.models.reservation import Reservation
from booking_engine.schemas.reservation import (
    BookingEventRead,
    ReservationCreate,
    ReservationRead,
    ReservationTransitionRequest,
)
from booking_engine.services import (
    availability_store,
    booking_event_service,
    conflict_resolver,
    lifecycle_service,
)

router = APIRouter()


def _assert_can_view(actor: Actor, reservation: Reservation) -> None:
    if actor.is_staff:
        return
    if actor.role == ActorRole.CUSTOMER and reservation.requester_id == actor.user_id:
        return
    if (
        actor.role == ActorRole.SHOP_OWNER
        and reservation.vehicle.shop.owner_id == actor.user_id
    ):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
    )


async def _get_visible_reservation(
    session: AsyncSession, reservation_id: uuid.UUID, actor: Actor
) -> Reservation:
    try:
        reservation = await availability_store.get_reservation(session, reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    _assert_can_view(actor, reservation)
    return reservation


@router.post(
    "",
    response_model=ReservationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request a reservation",
)
async def create_reservation(
    payload: ReservationCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    clock: Annotated[Clock, Depends(deps.get_clock)],
) -> ReservationRead:
    try:
        reservation = await conflict_resolver.request_reservation(
            session,
            vehicle_id=payload.vehicle_id,
            date_range=payload.to_range(),
            requester_id=actor.user_id,
            clock=clock,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.get("/{reservation_id}", response_model=ReservationRead, summary="Get reservation")
async def get_reservation(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> ReservationRead:
    reservation = await _get_visible_reservation(session, reservation_id, actor)
    return ReservationRead.model_validate(reservation)


@router.post(
    "/{reservation_id}/transition",
    response_model=ReservationRead,
    summary="Move a reservation to another status",
)
async def transition_reservation(
    reservation_id: uuid.UUID,
    payload: ReservationTransitionRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    clock: Annotated[Clock, Depends(deps.get_clock)],
) -> ReservationRead:
    await _get_visible_reservation(session, reservation_id, actor)
    try:
        reservation = await lifecycle_service.transition_reservation(
            session,
            reservation_id=reservation_id,
            target=payload.status,
            actor=actor,
            reason=payload.reason,
            clock=clock,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.post(
    "/{reservation_id}/deposit-paid",
    response_model=ReservationRead,
    summary="Record a captured deposit",
)
async def mark_deposit_paid(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> ReservationRead:
    try:
        reservation = await lifecycle_service.mark_deposit_paid(
            session, reservation_id=reservation_id, actor=actor
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.post(
    "/{reservation_id}/override-hold",
    response_model=ReservationRead,
    summary="Keep an unpaid hold from expiring",
)
async def override_hold(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
    clock: Annotated[Clock, Depends(deps.get_clock)],
) -> ReservationRead:
    try:
        reservation = await lifecycle_service.override_hold_expiry(
            session, reservation_id=reservation_id, actor=actor, clock=clock
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.get(
    "/{reservation_id}/events",
    response_model=list[BookingEventRead],
    summary="Booking history for a reservation",
)
async def list_reservation_events(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> list[BookingEventRead]:
    await _get_visible_reservation(session, reservation_id, actor)
    try:
        events = await booking_event_service.list_reservation_events(
            session, reservation_id=reservation_id
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [BookingEventRead.model_validate(event) for event in events]

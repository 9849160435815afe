"""Availability endpoints for booking and browse flows."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api import deps
from booking_engine.api.errors import to_http_exception
from booking_engine.core.clock import Clock
from booking_engine.core.errors import BookingError
from booking_engine.core.security import Actor
from booking_engine.schemas.availability import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    BatchAvailabilityRequest,
    BatchAvailabilityResponse,
)
from booking_engine.services import batch_availability, conflict_resolver

router = APIRouter()


@router.post(
    "/check",
    response_model=AvailabilityCheckResponse,
    summary="Check one vehicle for a date range",
)
async def check_availability(
    payload: AvailabilityCheckRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_current_actor)],
    clock: Annotated[Clock, Depends(deps.get_clock)],
) -> AvailabilityCheckResponse:
    try:
        available = await conflict_resolver.check_availability(
            session,
            vehicle_id=payload.vehicle_id,
            date_range=payload.to_range(),
            clock=clock,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return AvailabilityCheckResponse(
        vehicle_id=payload.vehicle_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        available=available,
    )


@router.post(
    "/batch",
    response_model=BatchAvailabilityResponse,
    summary="Check many vehicles for one date range",
)
async def check_availability_batch(
    payload: BatchAvailabilityRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_current_actor)],
    clock: Annotated[Clock, Depends(deps.get_clock)],
) -> BatchAvailabilityResponse:
    try:
        result = await batch_availability.evaluate_batch(
            session,
            vehicle_ids=payload.vehicle_ids,
            window=payload.to_range(),
            clock=clock,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return BatchAvailabilityResponse(
        start_date=payload.start_date,
        end_date=payload.end_date,
        available=result.available,
        available_vehicle_ids=result.available_vehicle_ids,
        degraded=result.degraded,
    )

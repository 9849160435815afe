"""Vehicle calendar and owner blocked-date endpoints."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api import deps
from booking_engine.api.errors import to_http_exception
from booking_engine.core.clock import Clock
from booking_engine.core.errors import BookingError, BookingValidationError
from booking_engine.core.security import Actor
from booking_engine.schemas.availability import CalendarDay, VehicleCalendarResponse
from booking_engine.schemas.blocked_date import (
    BlockDatesResponse,
    BlockedDateRead,
    BlockedDatesRequest,
    UnblockDatesRequest,
    UnblockDatesResponse,
)
from booking_engine.schemas.dates import CalendarDate
from booking_engine.services import blocked_date_service, calendar_service
from booking_engine.services.intervals import DateRange

router = APIRouter()


@router.get(
    "/{vehicle_id}/calendar",
    response_model=VehicleCalendarResponse,
    summary="Per-day availability for a vehicle",
)
async def get_vehicle_calendar(
    vehicle_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_current_actor)],
    clock: Annotated[Clock, Depends(deps.get_clock)],
    start_date: Annotated[CalendarDate, Query()],
    end_date: Annotated[CalendarDate, Query()],
) -> VehicleCalendarResponse:
    try:
        days = await calendar_service.get_vehicle_calendar(
            session,
            vehicle_id=vehicle_id,
            window=DateRange(start_date, end_date),
            clock=clock,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return VehicleCalendarResponse(
        vehicle_id=vehicle_id,
        days=[CalendarDay.model_validate(day) for day in days],
    )


@router.get(
    "/{vehicle_id}/blocked-dates",
    response_model=list[BlockedDateRead],
    summary="List blocked dates",
)
async def list_blocked_dates(
    vehicle_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_current_actor)],
    start_date: Annotated[CalendarDate | None, Query()] = None,
    end_date: Annotated[CalendarDate | None, Query()] = None,
) -> list[BlockedDateRead]:
    try:
        window = None
        if (start_date is None) != (end_date is None):
            raise BookingValidationError("start_date and end_date must be given together")
        if start_date is not None and end_date is not None:
            window = DateRange(start_date, end_date)
        blocks = await blocked_date_service.list_blocked_dates(
            session, vehicle_id=vehicle_id, window=window
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [BlockedDateRead.model_validate(block) for block in blocks]


@router.post(
    "/{vehicle_id}/blocked-dates",
    response_model=BlockDatesResponse,
    summary="Block dates for a vehicle",
)
async def block_dates(
    vehicle_id: uuid.UUID,
    payload: BlockedDatesRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> BlockDatesResponse:
    try:
        result = await blocked_date_service.block_dates(
            session,
            vehicle_id=vehicle_id,
            dates=payload.dates,
            reason=payload.reason,
            actor=actor,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return BlockDatesResponse(
        vehicle_id=vehicle_id,
        created=result.created,
        already_blocked=result.already_blocked,
        warnings=result.warnings,
        overlapping_reservation_ids=result.overlapping_reservation_ids,
    )


@router.delete(
    "/{vehicle_id}/blocked-dates",
    response_model=UnblockDatesResponse,
    summary="Unblock dates for a vehicle",
)
async def unblock_dates(
    vehicle_id: uuid.UUID,
    payload: UnblockDatesRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_current_actor)],
) -> UnblockDatesResponse:
    try:
        removed = await blocked_date_service.unblock_dates(
            session, vehicle_id=vehicle_id, dates=payload.dates, actor=actor
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return UnblockDatesResponse(vehicle_id=vehicle_id, removed=removed)

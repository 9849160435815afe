"""Helper utilities for recording booking history."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.booking_event import BookingEvent, BookingEventType


def add_event(
    session: AsyncSession,
    *,
    vehicle_id: uuid.UUID,
    event_type: BookingEventType,
    reservation_id: uuid.UUID | None = None,
    actor_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> BookingEvent:
    """Stage a history entry in the caller's transaction.

    Events are committed together with the change they describe, never on
    their own.
    """
    event = BookingEvent(
        vehicle_id=vehicle_id,
        reservation_id=reservation_id,
        event_type=event_type,
        actor_id=actor_id,
        notes=notes,
    )
    session.add(event)
    return event


async def list_reservation_events(
    session: AsyncSession, *, reservation_id: uuid.UUID
) -> Sequence[BookingEvent]:
    # Imported here; availability_store records events through this module.
    from booking_engine.services.availability_store import storage_guard

    async with storage_guard("list_reservation_events"):
        result = await session.execute(
            select(BookingEvent)
            .where(BookingEvent.reservation_id == reservation_id)
            .order_by(BookingEvent.created_at, BookingEvent.id)
        )
        return result.scalars().all()

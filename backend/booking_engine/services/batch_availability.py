"""Availability for many vehicles over one date range.

Results are advisory: a vehicle reported free here can be taken a moment
later. Booking always goes through :func:`conflict_resolver.request_reservation`,
which is the only authority at commit time.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import Clock, utc_now
from booking_engine.core.config import get_settings
from booking_engine.core.errors import BookingValidationError, StorageError
from booking_engine.services import availability_store, conflict_resolver
from booking_engine.services.intervals import DateRange

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BatchAvailability:
    """Per-vehicle availability plus whether storage was bypassed."""

    available: dict[uuid.UUID, bool]
    degraded: bool = False

    @property
    def available_vehicle_ids(self) -> list[uuid.UUID]:
        return [vehicle_id for vehicle_id, ok in self.available.items() if ok]


async def evaluate_batch(
    session: AsyncSession,
    *,
    vehicle_ids: Sequence[uuid.UUID],
    window: DateRange,
    clock: Clock = utc_now,
    fail_open: bool | None = None,
) -> BatchAvailability:
    """Partition ``vehicle_ids`` into available and unavailable.

    Issues a single bulk occupancy load. Every requested id appears in the
    result: unknown vehicles are reported unavailable. If the load fails and
    ``fail_open`` is set, every vehicle is reported available with
    ``degraded=True``; otherwise the :class:`StorageError` propagates.
    """
    settings = get_settings()
    if fail_open is None:
        fail_open = settings.batch_fail_open
    ids = list(dict.fromkeys(vehicle_ids))
    if len(ids) > settings.batch_max_vehicles:
        raise BookingValidationError(
            f"At most {settings.batch_max_vehicles} vehicles can be checked at once"
        )
    if not ids:
        return BatchAvailability(available={})

    try:
        occupancy = await availability_store.load_occupancy_batch(
            session, vehicle_ids=ids, window=window
        )
    except StorageError:
        if not fail_open:
            raise
        logger.warning(
            "Batch availability degraded for %d vehicles %s; reporting available",
            len(ids),
            window,
        )
        return BatchAvailability(available=dict.fromkeys(ids, True), degraded=True)

    now = clock()
    hold = availability_store.hold_duration()
    available: dict[uuid.UUID, bool] = {}
    for vehicle_id in ids:
        entry = occupancy.get(vehicle_id)
        if entry is None or entry.vehicle is None:
            available[vehicle_id] = False
            continue
        reason = conflict_resolver.find_conflict(entry, window, now=now, hold=hold)
        available[vehicle_id] = reason is None
    return BatchAvailability(available=available)

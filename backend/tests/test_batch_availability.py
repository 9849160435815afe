"""Browse-with-dates availability for many vehicles."""

from __future__ import annotations

import uuid
from datetime import date

import pytest

from booking_engine.core.errors import BookingValidationError, StorageError
from booking_engine.core.security import Actor
from booking_engine.services import (
    availability_store,
    batch_availability,
    blocked_date_service,
    conflict_resolver,
)
from booking_engine.services.intervals import DateRange

pytestmark = pytest.mark.asyncio

WINDOW = DateRange(date(2030, 6, 10), date(2030, 6, 15))


async def _seed_occupancy(fleet: dict[str, object], owner: Actor) -> None:
    first, second, _third = fleet["vehicle_ids"]
    async with fleet["sessionmaker"]() as session:
        await conflict_resolver.request_reservation(
            session,
            vehicle_id=first,
            date_range=DateRange(date(2030, 6, 12), date(2030, 6, 13)),
            requester_id=uuid.uuid4(),
        )
    async with fleet["sessionmaker"]() as session:
        await blocked_date_service.block_dates(
            session, vehicle_id=second, dates=[date(2030, 6, 14)], actor=owner
        )


async def test_batch_matches_single_vehicle_checks(
    fleet: dict[str, object], owner: Actor
) -> None:
    await _seed_occupancy(fleet, owner)
    ids = [*fleet["vehicle_ids"], fleet["unlisted_vehicle_id"], fleet["deposit_vehicle_id"]]

    async with fleet["sessionmaker"]() as session:
        result = await batch_availability.evaluate_batch(
            session, vehicle_ids=ids, window=WINDOW
        )
        singles = {
            vehicle_id: await conflict_resolver.check_availability(
                session, vehicle_id=vehicle_id, date_range=WINDOW
            )
            for vehicle_id in ids
        }

    assert result.degraded is False
    assert result.available == singles
    first, second, third = fleet["vehicle_ids"]
    assert result.available[first] is False
    assert result.available[second] is False
    assert result.available[third] is True
    assert result.available[fleet["unlisted_vehicle_id"]] is False
    assert set(result.available_vehicle_ids) == {third, fleet["deposit_vehicle_id"]}


async def test_batch_uses_a_single_bulk_load(
    fleet: dict[str, object], monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[list[uuid.UUID]] = []
    real_load = availability_store.load_occupancy_batch

    async def _counting(session, *, vehicle_ids, window):
        calls.append(list(vehicle_ids))
        return await real_load(session, vehicle_ids=vehicle_ids, window=window)

    monkeypatch.setattr(availability_store, "load_occupancy_batch", _counting)
    async with fleet["sessionmaker"]() as session:
        await batch_availability.evaluate_batch(
            session, vehicle_ids=fleet["vehicle_ids"], window=WINDOW
        )

    assert len(calls) == 1


async def test_unknown_and_duplicate_ids_are_reported(fleet: dict[str, object]) -> None:
    unknown = uuid.uuid4()
    vehicle_id = fleet["vehicle_id"]

    async with fleet["sessionmaker"]() as session:
        result = await batch_availability.evaluate_batch(
            session, vehicle_ids=[vehicle_id, unknown, vehicle_id], window=WINDOW
        )

    assert result.available == {vehicle_id: True, unknown: False}


async def test_empty_batch_returns_empty_result(fleet: dict[str, object]) -> None:
    async with fleet["sessionmaker"]() as session:
        result = await batch_availability.evaluate_batch(
            session, vehicle_ids=[], window=WINDOW
        )
    assert result.available == {}


async def test_oversized_batch_is_rejected(
    fleet: dict[str, object], monkeypatch: pytest.MonkeyPatch
) -> None:
    from booking_engine.core.config import get_settings

    monkeypatch.setenv("BATCH_MAX_VEHICLES", "2")
    get_settings.cache_clear()

    async with fleet["sessionmaker"]() as session:
        with pytest.raises(BookingValidationError):
            await batch_availability.evaluate_batch(
                session, vehicle_ids=fleet["vehicle_ids"], window=WINDOW
            )


async def _failing_load(session, *, vehicle_ids, window):
    raise StorageError("load_occupancy_batch timed out")


async def test_storage_failure_propagates_when_failing_closed(
    fleet: dict[str, object], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(availability_store, "load_occupancy_batch", _failing_load)

    async with fleet["sessionmaker"]() as session:
        with pytest.raises(StorageError):
            await batch_availability.evaluate_batch(
                session, vehicle_ids=fleet["vehicle_ids"], window=WINDOW, fail_open=False
            )


async def test_storage_failure_degrades_when_failing_open(
    fleet: dict[str, object], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(availability_store, "load_occupancy_batch", _failing_load)
    ids = fleet["vehicle_ids"]

    async with fleet["sessionmaker"]() as session:
        result = await batch_availability.evaluate_batch(
            session, vehicle_ids=ids, window=WINDOW, fail_open=True
        )

    assert result.degraded is True
    assert result.available == {vehicle_id: True for vehicle_id in ids}

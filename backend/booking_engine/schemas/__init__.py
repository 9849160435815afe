"""Schema exports."""

from booking_engine.schemas.availability import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    BatchAvailabilityRequest,
    BatchAvailabilityResponse,
    CalendarDay,
    DateWindow,
    VehicleCalendarResponse,
)
from booking_engine.schemas.blocked_date import (
    BlockDatesResponse,
    BlockedDateRead,
    BlockedDatesRequest,
    UnblockDatesRequest,
    UnblockDatesResponse,
)
from booking_engine.schemas.reservation import (
    BookingEventRead,
    ReservationCreate,
    ReservationRead,
    ReservationTransitionRequest,
)

__all__ = [
    "AvailabilityCheckRequest",
    "AvailabilityCheckResponse",
    "BatchAvailabilityRequest",
    "BatchAvailabilityResponse",
    "BlockDatesResponse",
    "BlockedDateRead",
    "BlockedDatesRequest",
    "BookingEventRead",
    "CalendarDay",
    "DateWindow",
    "ReservationCreate",
    "ReservationRead",
    "ReservationTransitionRequest",
    "UnblockDatesRequest",
    "UnblockDatesResponse",
    "VehicleCalendarResponse",
]

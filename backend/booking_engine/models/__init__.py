"""ORM models package export."""

from booking_engine.models.blocked_date import BlockedDate
from booking_engine.models.booking_event import BookingEvent, BookingEventType
from booking_engine.models.reservation import Reservation, ReservationStatus
from booking_engine.models.vehicle import RentalShop, Vehicle

__all__ = [
    "BlockedDate",
    "BookingEvent",
    "BookingEventType",
    "RentalShop",
    "Reservation",
    "ReservationStatus",
    "Vehicle",
]

"""Service layer exports."""
from booking_engine.services import (
    availability_store,
    batch_availability,
    blocked_date_service,
    booking_event_service,
    calendar_service,
    conflict_resolver,
    intervals,
    lifecycle_service,
)

__all__ = [
    "availability_store",
    "batch_availability",
    "blocked_date_service",
    "booking_event_service",
    "calendar_service",
    "conflict_resolver",
    "intervals",
    "lifecycle_service",
]

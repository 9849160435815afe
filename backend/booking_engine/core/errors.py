"""Error taxonomy for availability and booking operations.

Callers must be able to tell an expected outcome (``DateConflict``) apart from
an infrastructure failure (``StorageError``); the two map to different user
treatments and are never folded into one another.
"""

from __future__ import annotations

import enum
import uuid


class ConflictReason(str, enum.Enum):
    """Why a reservation request was turned away."""

    DATE_CONFLICT = "BOOKING_CONFLICT"
    VEHICLE_UNAVAILABLE = "VEHICLE_UNAVAILABLE"


class BookingError(Exception):
    """Base class for all engine errors."""

    error_code = "BOOKING_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingError, ValueError):
    """Input rejected before any storage access."""

    error_code = "VALIDATION_ERROR"


class DateConflict(BookingError):
    """The requested dates are not available for the vehicle."""

    def __init__(
        self,
        message: str = "Vehicle is not available for the selected dates",
        *,
        reason: ConflictReason = ConflictReason.DATE_CONFLICT,
    ) -> None:
        super().__init__(message)
        self.reason = reason

    @property
    def error_code(self) -> str:  # type: ignore[override]
        return self.reason.value


class DepositRequired(BookingError):
    """A deposit must be paid before the reservation can be confirmed."""

    error_code = "DEPOSIT_REQUIRED"


class TransitionError(BookingError):
    """The requested status change is not permitted."""

    error_code = "INVALID_TRANSITION"


class NotAuthorized(BookingError, PermissionError):
    """The acting user may not perform this operation."""

    error_code = "NOT_AUTHORIZED"


class VehicleNotFound(BookingError, LookupError):
    error_code = "VEHICLE_NOT_FOUND"

    def __init__(self, vehicle_id: uuid.UUID) -> None:
        super().__init__(f"Vehicle {vehicle_id} not found")
        self.vehicle_id = vehicle_id


class ReservationNotFound(BookingError, LookupError):
    error_code = "RESERVATION_NOT_FOUND"

    def __init__(self, reservation_id: uuid.UUID) -> None:
        super().__init__(f"Reservation {reservation_id} not found")
        self.reservation_id = reservation_id


class StorageError(BookingError):
    """The persistence collaborator failed or timed out; safe to retry."""

    error_code = "STORAGE_UNAVAILABLE"


__all__ = [
    "BookingError",
    "BookingValidationError",
    "ConflictReason",
    "DateConflict",
    "DepositRequired",
    "NotAuthorized",
    "ReservationNotFound",
    "StorageError",
    "TransitionError",
    "VehicleNotFound",
]

"""Translate engine errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from booking_engine.core.errors import (
    BookingError,
    BookingValidationError,
    DateConflict,
    DepositRequired,
    NotAuthorized,
    ReservationNotFound,
    StorageError,
    TransitionError,
    VehicleNotFound,
)

_STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (BookingValidationError, 422),
    (DateConflict, status.HTTP_409_CONFLICT),
    (DepositRequired, status.HTTP_409_CONFLICT),
    (TransitionError, status.HTTP_400_BAD_REQUEST),
    (NotAuthorized, status.HTTP_403_FORBIDDEN),
    (VehicleNotFound, status.HTTP_404_NOT_FOUND),
    (ReservationNotFound, status.HTTP_404_NOT_FOUND),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(exc: BookingError) -> HTTPException:
    """Build the HTTPException for ``exc``; body carries a stable ``error_code``."""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    headers = {"Retry-After": "1"} if isinstance(exc, StorageError) else None
    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, "error_code": exc.error_code},
        headers=headers,
    )

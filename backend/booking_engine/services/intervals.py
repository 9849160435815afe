"""Calendar date ranges and the overlap predicate.

Ranges are half-open, ``[start, end)``: a vehicle returned on day X can be
picked up by the next renter on day X. :func:`overlaps` is the only place
range intersection is decided; everything else calls it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from booking_engine.core.errors import BookingValidationError

_ONE_DAY = timedelta(days=1)


def as_calendar_date(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(slots=True, frozen=True)
class DateRange:
    """Immutable ``[start, end)`` span of calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        start = as_calendar_date(self.start)
        end = as_calendar_date(self.end)
        if start >= end:
            raise BookingValidationError(
                f"End date must be after start date ({start.isoformat()} >= {end.isoformat()})"
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def single_day(cls, day: date | datetime) -> DateRange:
        day = as_calendar_date(day)
        return cls(day, day + _ONE_DAY)

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def days(self) -> Iterator[date]:
        """Yield every calendar day covered by the range."""
        current = self.start
        while current < self.end:
            yield current
            current += _ONE_DAY

    def contains(self, day: date | datetime) -> bool:
        day = as_calendar_date(day)
        return self.start <= day < self.end

    def overlaps(self, other: DateRange) -> bool:
        return overlaps(self, other)

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


def overlaps(a: DateRange, b: DateRange) -> bool:
    """Return True when the two ranges share at least one day."""
    return a.start < b.end and b.start < a.end


def covering_range(days: list[date]) -> DateRange:
    """Smallest range containing every day in ``days``."""
    if not days:
        raise BookingValidationError("At least one date is required")
    return DateRange(min(days), max(days) + _ONE_DAY)

"""Append-only history of booking state changes."""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.db.base import Base


class BookingEventType(str, enum.Enum):
    """Kinds of recorded booking events."""

    CREATED = "created"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    HOLD_EXPIRED = "hold_expired"
    HOLD_OVERRIDE = "hold_override"
    DEPOSIT_PAID = "deposit_paid"
    DATES_BLOCKED = "dates_blocked"
    DATES_UNBLOCKED = "dates_unblocked"


class BookingEvent(Base):
    """Stores immutable booking history entries."""

    __tablename__ = "booking_events"
    __table_args__ = (Index("ix_booking_events_reservation", "reservation_id"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False
    )
    reservation_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("reservations.id", ondelete="CASCADE")
    )
    event_type: Mapped[BookingEventType] = mapped_column(
        Enum(BookingEventType), nullable=False
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1024))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

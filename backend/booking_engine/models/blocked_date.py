"""Owner-imposed unavailable days."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.db.base import Base

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from booking_engine.models.vehicle import Vehicle


class BlockedDate(Base):
    """One calendar day a shop owner has taken off the market for a vehicle."""

    __tablename__ = "vehicle_blocked_dates"
    __table_args__ = (
        UniqueConstraint("vehicle_id", "blocked_on", name="uq_blocked_vehicle_day"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False
    )
    blocked_on: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255))
    created_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    vehicle: Mapped["Vehicle"] = relationship("Vehicle", back_populates="blocked_dates")

"""Shop and vehicle rows owned by the marketplace catalogue.

The engine reads these for ownership checks and the general "listed for
rent" switch. ``lock_version`` is the only column it writes: bumping it is how
a reservation transaction takes the per-vehicle lock.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.db.base import Base
from booking_engine.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from booking_engine.models.blocked_date import BlockedDate
    from booking_engine.models.reservation import Reservation


class RentalShop(TimestampMixin, Base):
    """A shop listing vehicles on the marketplace."""

    __tablename__ = "rental_shops"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    requires_deposit: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    vehicles: Mapped[list["Vehicle"]] = relationship("Vehicle", back_populates="shop")


class Vehicle(TimestampMixin, Base):
    """A single bookable unit."""

    __tablename__ = "vehicles"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    shop_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rental_shops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    lock_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    shop: Mapped[RentalShop] = relationship("RentalShop", back_populates="vehicles")
    reservations: Mapped[list["Reservation"]] = relationship(
        "Reservation", back_populates="vehicle"
    )
    blocked_dates: Mapped[list["BlockedDate"]] = relationship(
        "BlockedDate", back_populates="vehicle", cascade="all, delete-orphan"
    )

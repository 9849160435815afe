"""Initial booking engine schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

reservation_status = sa.Enum(
    "PENDING", "CONFIRMED", "COMPLETED", "CANCELLED", name="reservationstatus"
)
booking_event_type = sa.Enum(
    "CREATED",
    "CONFIRMED",
    "COMPLETED",
    "CANCELLED",
    "HOLD_EXPIRED",
    "HOLD_OVERRIDE",
    "DEPOSIT_PAID",
    "DATES_BLOCKED",
    "DATES_UNBLOCKED",
    name="bookingeventtype",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "rental_shops",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "requires_deposit", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )
    op.create_index("ix_rental_shops_owner_id", "rental_shops", ["owner_id"])

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "shop_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("rental_shops.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("lock_version", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_vehicles_shop_id", "vehicles", ["shop_id"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "vehicle_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("vehicles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("requester_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", reservation_status, nullable=False),
        sa.Column(
            "deposit_required", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("deposit_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("hold_override", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cancellation_reason", sa.String(length=255)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint("end_date > start_date", name="ck_reservations_date_order"),
    )
    op.create_index("ix_reservations_requester_id", "reservations", ["requester_id"])
    op.create_index(
        "ix_reservations_vehicle_window",
        "reservations",
        ["vehicle_id", "start_date", "end_date"],
    )

    op.create_table(
        "vehicle_blocked_dates",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "vehicle_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("vehicles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("blocked_on", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=255)),
        sa.Column("created_by", sa.Uuid(as_uuid=True)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("vehicle_id", "blocked_on", name="uq_blocked_vehicle_day"),
    )

    op.create_table(
        "booking_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "vehicle_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("vehicles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "reservation_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("reservations.id", ondelete="CASCADE"),
        ),
        sa.Column("event_type", booking_event_type, nullable=False),
        sa.Column("actor_id", sa.Uuid(as_uuid=True)),
        sa.Column("notes", sa.String(length=1024)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_booking_events_reservation", "booking_events", ["reservation_id"])


def downgrade() -> None:
    op.drop_index("ix_booking_events_reservation", table_name="booking_events")
    op.drop_table("booking_events")
    op.drop_table("vehicle_blocked_dates")
    op.drop_index("ix_reservations_vehicle_window", table_name="reservations")
    op.drop_index("ix_reservations_requester_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_vehicles_shop_id", table_name="vehicles")
    op.drop_table("vehicles")
    op.drop_index("ix_rental_shops_owner_id", table_name="rental_shops")
    op.drop_table("rental_shops")
    reservation_status.drop(op.get_bind(), checkfirst=True)
    booking_event_type.drop(op.get_bind(), checkfirst=True)

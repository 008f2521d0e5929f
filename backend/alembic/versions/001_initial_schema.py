# backend/alembic/versions/001_initial_schema.py
"""Initial schema - users, spots, availability, bookings, payments, payouts, notifications

Revision ID: 001_initial_schema
Revises:
Create Date: 2024-06-01 00:00:00.000000

Creates every table the booking engine reads and writes. Wall-clock dates
and times are stored as DATE and HH:MM strings and interpreted in the
owning spot's timezone.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(26), primary_key=True)


def _timestamps(updated_nullable: bool = True) -> list:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=updated_nullable,
            server_default=None if updated_nullable else sa.func.now(),
        ),
    ]


def upgrade() -> None:
    print("Creating users, vehicles and device tokens...")
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "vehicles",
        _id(),
        sa.Column(
            "user_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("plate_number", sa.String(20), nullable=False),
        sa.Column("make", sa.String(50)),
        sa.Column("model", sa.String(50)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_vehicles_user_id", "vehicles", ["user_id"])

    op.create_table(
        "device_tokens",
        _id(),
        sa.Column(
            "user_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("token", sa.String(512), nullable=False, unique=True),
        sa.Column("platform", sa.String(20)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_used_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_device_tokens_user_active", "device_tokens", ["user_id", "is_active"])

    print("Creating spots and availability windows...")
    op.create_table(
        "spots",
        _id(),
        sa.Column(
            "host_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        *_timestamps(),
        sa.CheckConstraint("hourly_rate >= 0", name="check_spot_rate_non_negative"),
        sa.CheckConstraint("status IN ('draft', 'published')", name="ck_spots_status"),
    )
    op.create_index("ix_spots_host_id", "spots", ["host_id"])

    op.create_table(
        "availabilities",
        _id(),
        sa.Column(
            "spot_id", sa.String(26), sa.ForeignKey("spots.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("day", sa.String(3), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("end_time > start_time", name="check_availability_time_order"),
    )
    op.create_index("idx_availabilities_spot_day", "availabilities", ["spot_id", "day"])

    print("Creating bookings, time changes and booking logs...")
    op.create_table(
        "bookings",
        _id(),
        sa.Column("client_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("host_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("spot_id", sa.String(26), sa.ForeignKey("spots.id"), nullable=False),
        sa.Column("vehicle_id", sa.String(26), sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column("day", sa.String(3), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("type", sa.String(10), nullable=False, server_default="normal"),
        sa.Column("gross_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("canceled_by", sa.String(10)),
        *_timestamps(),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "status IN ('request-pending', 'payment-pending', 'accepted', 'rejected', "
            "'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint("type IN ('normal', 'custom')", name="ck_bookings_type"),
        sa.CheckConstraint("gross_amount >= 0", name="check_gross_non_negative"),
    )
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])
    op.create_index("ix_bookings_host_id", "bookings", ["host_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_spot_status", "bookings", ["spot_id", "status"])
    op.create_index("idx_bookings_spot_dates", "bookings", ["spot_id", "start_date", "end_date"])

    op.create_table(
        "time_changes",
        _id(),
        sa.Column(
            "booking_id",
            sa.String(26),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("spot_id", sa.String(26), sa.ForeignKey("spots.id"), nullable=False),
        sa.Column("client_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("host_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("old_day", sa.String(3), nullable=False),
        sa.Column("old_start_date", sa.Date(), nullable=False),
        sa.Column("old_start_time", sa.String(5), nullable=False),
        sa.Column("old_end_date", sa.Date(), nullable=False),
        sa.Column("old_end_time", sa.String(5), nullable=False),
        sa.Column("new_day", sa.String(3), nullable=False),
        sa.Column("new_start_date", sa.Date(), nullable=False),
        sa.Column("new_start_time", sa.String(5), nullable=False),
        sa.Column("new_end_date", sa.Date(), nullable=False),
        sa.Column("new_end_time", sa.String(5), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')", name="ck_time_changes_status"
        ),
    )
    op.create_index(
        "idx_time_changes_booking_status", "time_changes", ["booking_id", "status"]
    )
    op.create_index("idx_time_changes_host_status", "time_changes", ["host_id", "status"])
    # At most one pending request per booking
    op.create_index(
        "uq_time_changes_pending_booking",
        "time_changes",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    empty_entry = sa.text("""'{"done": false, "date_time": null, "location": null}'::jsonb""")
    op.create_table(
        "booking_logs",
        _id(),
        sa.Column(
            "booking_id",
            sa.String(26),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("client_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("host_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_checkin", JSONB, nullable=False, server_default=empty_entry),
        sa.Column("host_checkin", JSONB, nullable=False, server_default=empty_entry),
        sa.Column("user_checkout", JSONB, nullable=False, server_default=empty_entry),
        sa.Column("host_checkout", JSONB, nullable=False, server_default=empty_entry),
        *_timestamps(),
    )

    print("Creating payments, Stripe accounts and payouts...")
    op.create_table(
        "payments",
        _id(),
        sa.Column(
            "booking_id",
            sa.String(26),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("client_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("host_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("spot_id", sa.String(26), sa.ForeignKey("spots.id"), nullable=False),
        sa.Column("gross_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("platform_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("stripe_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("tax_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="usd"),
        sa.Column("payment_intent_id", sa.String(255), unique=True),
        sa.Column("client_secret", sa.String(255)),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])

    op.create_table(
        "stripe_accounts",
        _id(),
        sa.Column(
            "user_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("stripe_account_id", sa.String(255), nullable=False, unique=True),
        sa.Column("payouts_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "payouts",
        _id(),
        sa.Column("user_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("stripe_account_id", sa.String(255), nullable=False),
        sa.Column("gross_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("platform_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("stripe_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("tax_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("net_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="usd"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("transfer_id", sa.String(255), unique=True),
        sa.Column("error_message", sa.Text()),
        sa.Column("metadata", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("payout_date", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_payouts_user_id", "payouts", ["user_id"])
    op.create_index("ix_payouts_status", "payouts", ["status"])

    op.create_table(
        "payout_attempts",
        _id(),
        sa.Column(
            "user_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("user_id", "day", name="uq_payout_attempts_user_day"),
    )

    print("Creating notifications and the event outbox...")
    op.create_table(
        "notifications",
        _id(),
        sa.Column(
            "user_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("booking_id", sa.String(26)),
        sa.Column("spot_id", sa.String(26)),
        sa.Column("vehicle_id", sa.String(26)),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text()),
        sa.Column("data", JSONB),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index("idx_notifications_user_unread", "notifications", ["user_id", "is_read"])

    op.create_table(
        "event_outbox",
        _id(),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("aggregate_id", sa.String(64), nullable=False),
        sa.Column("idempotency_key", sa.String(255), nullable=False),
        sa.Column("payload", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True)),
        sa.Column("last_error", sa.Text()),
        *_timestamps(updated_nullable=False),
        sa.UniqueConstraint("idempotency_key", name="uq_event_outbox_idempotency_key"),
    )
    op.create_index("ix_event_outbox_event_type", "event_outbox", ["event_type"])
    op.create_index("ix_event_outbox_aggregate_id", "event_outbox", ["aggregate_id"])
    op.create_index("ix_event_outbox_status", "event_outbox", ["status"])
    op.create_index("ix_event_outbox_next_attempt_at", "event_outbox", ["next_attempt_at"])

    print("Initial schema created.")


def downgrade() -> None:
    print("Dropping initial schema...")
    for table in (
        "event_outbox",
        "notifications",
        "payout_attempts",
        "payouts",
        "stripe_accounts",
        "payments",
        "booking_logs",
        "time_changes",
        "bookings",
        "availabilities",
        "spots",
        "device_tokens",
        "vehicles",
        "users",
    ):
        op.drop_table(table)

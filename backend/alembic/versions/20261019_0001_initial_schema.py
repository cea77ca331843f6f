"""Create packages, booking requests and confirmed bookings.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "packages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("package_name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0.00")),
        sa.Column("duration_hours", sa.Integer(), nullable=True),
        sa.Column("status", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("display", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )

    op.create_table(
        "booking_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("package_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("event_time", sa.Time(), nullable=False),
        sa.Column("event_end_time", sa.Time(), nullable=True),
        sa.Column("extension_duration", sa.Integer(), nullable=True),
        sa.Column("event_address", sa.Text(), nullable=False),
        sa.Column("event_name", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("contact_person", sa.Text(), nullable=True),
        sa.Column("contact_person_number", sa.Text(), nullable=True),
        sa.Column("booth_placement", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["package_id"], ["packages.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'cancelled', 'declined')",
            name="ck_booking_requests_status",
        ),
        sa.CheckConstraint(
            "extension_duration IS NULL OR extension_duration >= 0",
            name="ck_booking_requests_extension_non_negative",
        ),
    )
    op.create_index("ix_booking_requests_package_id", "booking_requests", ["package_id"])
    op.create_index("ix_booking_requests_user_id", "booking_requests", ["user_id"])
    op.create_index("ix_booking_requests_event_date", "booking_requests", ["event_date"])
    op.create_index("ix_booking_requests_status", "booking_requests", ["status"])

    op.create_table(
        "confirmed_bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("event_end_time", sa.Time(), nullable=True),
        sa.Column("extension_duration", sa.Integer(), nullable=True),
        sa.Column(
            "booking_status", sa.String(length=20), nullable=False, server_default="scheduled"
        ),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="unpaid"),
        sa.Column(
            "total_booking_price",
            sa.Numeric(10, 2),
            nullable=False,
            server_default=sa.text("0.00"),
        ),
        sa.Column(
            "contract_signed", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["request_id"], ["booking_requests.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("request_id", name="uq_confirmed_bookings_request_id"),
        sa.CheckConstraint(
            "booking_status IN ('scheduled', 'in_progress', 'completed', 'cancelled')",
            name="ck_confirmed_bookings_booking_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'partial', 'paid', 'refunded')",
            name="ck_confirmed_bookings_payment_status",
        ),
    )
    op.create_index(
        "ix_confirmed_bookings_request_id", "confirmed_bookings", ["request_id"], unique=True
    )
    op.create_index("ix_confirmed_bookings_user_id", "confirmed_bookings", ["user_id"])
    op.create_index(
        "ix_confirmed_bookings_booking_status", "confirmed_bookings", ["booking_status"]
    )


def downgrade() -> None:
    op.drop_index("ix_confirmed_bookings_booking_status", table_name="confirmed_bookings")
    op.drop_index("ix_confirmed_bookings_user_id", table_name="confirmed_bookings")
    op.drop_index("ix_confirmed_bookings_request_id", table_name="confirmed_bookings")
    op.drop_table("confirmed_bookings")

    op.drop_index("ix_booking_requests_status", table_name="booking_requests")
    op.drop_index("ix_booking_requests_event_date", table_name="booking_requests")
    op.drop_index("ix_booking_requests_user_id", table_name="booking_requests")
    op.drop_index("ix_booking_requests_package_id", table_name="booking_requests")
    op.drop_table("booking_requests")

    op.drop_table("packages")

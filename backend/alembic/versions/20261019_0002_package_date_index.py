"""Add composite index for per-package daily availability lookups.

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:02
"""

from typing import Sequence, Union

from alembic import op


revision: str = "20261019_0002"
down_revision: Union[str, None] = "20261019_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index(
        "ix_booking_requests_package_date_status",
        "booking_requests",
        ["package_id", "event_date", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_booking_requests_package_date_status", table_name="booking_requests")

"""Deposit settlement and automatic check-out.

Revision ID: 002_deposit_settlement
Revises: 001_initial
Create Date: 2026-10-19

Adds to bookings:
- auto_checked_out: stay closed by the check-out job
- deposit_refund_amount / deposit_settled_at: security deposit outcome
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "002_deposit_settlement"
down_revision: str = "001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "bookings",
        sa.Column("auto_checked_out", sa.Boolean, server_default=sa.false(), nullable=False),
    )
    op.add_column("bookings", sa.Column("deposit_refund_amount", sa.Integer))
    op.add_column("bookings", sa.Column("deposit_settled_at", sa.DateTime(timezone=True)))
    op.create_check_constraint(
        "ck_bookings_deposit_refund_non_negative",
        "bookings",
        "deposit_refund_amount IS NULL OR deposit_refund_amount >= 0",
    )


def downgrade() -> None:
    op.drop_constraint("ck_bookings_deposit_refund_non_negative", "bookings", type_="check")
    op.drop_column("bookings", "deposit_settled_at")
    op.drop_column("bookings", "deposit_refund_amount")
    op.drop_column("bookings", "auto_checked_out")

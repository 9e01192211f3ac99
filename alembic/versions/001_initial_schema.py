"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates all tables for the escrow engine:
- Bookings
- Financial snapshots and release events
- Disputes
- Payout accounts, requests and claims
- Audit logs
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_number", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("guest_id", sa.Uuid, nullable=False, index=True),
        sa.Column("host_id", sa.Uuid, nullable=False, index=True),
        sa.Column("property_id", sa.Uuid, nullable=False, index=True),
        sa.Column("check_in_date", sa.Date, nullable=False, index=True),
        sa.Column("check_out_date", sa.Date, nullable=False),
        sa.Column("currency", sa.String(3)),
        sa.Column("room_fee", sa.Integer, nullable=False),
        sa.Column("cleaning_fee", sa.Integer, nullable=False),
        sa.Column("security_deposit", sa.Integer, nullable=False),
        sa.Column("cancellation_policy", sa.String(20)),
        sa.Column("status", sa.String(20), index=True),
        sa.Column("stay_status", sa.String(20), index=True),
        sa.Column("is_blocked_dates", sa.Boolean, index=True),
        sa.Column("checked_in_on", sa.Date),
        sa.Column("checked_out_on", sa.Date),
        sa.Column("checked_in_at", sa.DateTime(timezone=True)),
        sa.Column("checked_out_at", sa.DateTime(timezone=True)),
        sa.Column("check_in_confirmed_by", sa.String(10)),
        sa.Column("cancelled_by", sa.String(10)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("refund_amount", sa.Integer),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("activated_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("version", sa.Integer, nullable=False),
    )

    # ==================== FINANCIAL ====================
    op.create_table(
        "financial_snapshots",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_id", sa.Uuid, sa.ForeignKey("bookings.id"), nullable=False, unique=True),
        sa.Column("room_fee", sa.Integer, nullable=False),
        sa.Column("cleaning_fee", sa.Integer, nullable=False),
        sa.Column("service_fee", sa.Integer, nullable=False),
        sa.Column("security_deposit", sa.Integer, nullable=False),
        sa.Column("total_charged", sa.Integer, nullable=False),
        sa.Column("commission_rate", sa.Numeric(6, 4), nullable=False),
        sa.Column("host_share_percent", sa.Numeric(6, 4), nullable=False),
        sa.Column("service_fee_rate", sa.Numeric(6, 4), nullable=False),
        sa.Column("host_share_amount", sa.Integer, nullable=False),
        sa.Column("platform_share_amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("config_version", sa.String(20), nullable=False),
        sa.Column("snapshot_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "room_fee >= 0 AND cleaning_fee >= 0 AND service_fee >= 0 "
            "AND security_deposit >= 0 AND total_charged >= 0",
            name="ck_financial_snapshots_non_negative",
        ),
        sa.CheckConstraint(
            "host_share_amount + platform_share_amount = room_fee",
            name="ck_financial_snapshots_split_reconciles",
        ),
    )

    op.create_table(
        "release_events",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_id", sa.Uuid, sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("host_id", sa.Uuid, nullable=False, index=True),
        sa.Column("event_type", sa.String(30), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("release_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), index=True),
        sa.Column("released_at", sa.DateTime(timezone=True)),
        sa.Column("claimed_amount", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("booking_id", "event_type", name="uq_release_events_booking_event"),
        sa.CheckConstraint(
            "claimed_amount >= 0 AND claimed_amount <= amount",
            name="ck_release_events_claimed_within_amount",
        ),
    )

    # ==================== DISPUTES ====================
    op.create_table(
        "disputes",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("booking_id", sa.Uuid, sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("opened_by", sa.String(10), nullable=False),
        sa.Column("opened_by_user_id", sa.Uuid, nullable=False),
        sa.Column("category", sa.String(40), nullable=False),
        sa.Column("claimed_amount", sa.Integer),
        sa.Column("writeup", sa.Text, nullable=False),
        sa.Column("evidence_urls", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), index=True),
        sa.Column("outcome", sa.String(20)),
        sa.Column("approved_amount", sa.Integer),
        sa.Column("resolution_notes", sa.Text),
        sa.Column("resolved_by", sa.Uuid),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("booking_id", "opened_by", name="uq_disputes_booking_party"),
    )

    # ==================== PAYOUTS ====================
    op.create_table(
        "payout_accounts",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("host_id", sa.Uuid, unique=True, nullable=False, index=True),
        sa.Column("bank_code", sa.String(20), nullable=False),
        sa.Column("bank_name", sa.String(100), nullable=False),
        sa.Column("account_name", sa.String(200), nullable=False),
        sa.Column("account_number_encrypted", sa.LargeBinary, nullable=False),
        sa.Column("account_number_masked", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("version", sa.Integer, nullable=False),
    )

    op.create_table(
        "payout_requests",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("host_id", sa.Uuid, nullable=False, index=True),
        sa.Column("payout_account_id", sa.Uuid, sa.ForeignKey("payout_accounts.id"), nullable=False),
        sa.Column("reference", sa.String(30), unique=True, nullable=False, index=True),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(20), index=True),
        sa.Column("gateway", sa.String(30)),
        sa.Column("gateway_transaction_id", sa.String(100)),
        sa.Column("failure_reason", sa.Text),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("processing_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("failed_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "payout_claims",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("payout_request_id", sa.Uuid, sa.ForeignKey("payout_requests.id"), nullable=False, index=True),
        sa.Column("release_event_id", sa.Uuid, sa.ForeignKey("release_events.id"), nullable=False, index=True),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("released_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== AUDIT ====================
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("resource_type", sa.String(50), nullable=False, index=True),
        sa.Column("resource_id", sa.Uuid),
        sa.Column("old_values", sa.JSON),
        sa.Column("new_values", sa.JSON),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("audit_logs")
    op.drop_table("payout_claims")
    op.drop_table("payout_requests")
    op.drop_table("payout_accounts")
    op.drop_table("disputes")
    op.drop_table("release_events")
    op.drop_table("financial_snapshots")
    op.drop_table("bookings")

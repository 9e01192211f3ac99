"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from shortlet.database import Base
from shortlet.domain.booking_state import ActorRole, BookingStatus, StayStatus
from shortlet.domain.cancellation_policy import CancellationPolicy
from shortlet.domain.dispute_state import DisputeParty
from shortlet.models.types import enum_column

if TYPE_CHECKING:
    from shortlet.models.dispute import Dispute
    from shortlet.models.financial import FinancialSnapshot


class Booking(Base):
    """Booking model.

    Guests, hosts and properties live in other services; only their ids
    are stored here.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint(
            "deposit_refund_amount IS NULL OR deposit_refund_amount >= 0",
            name="ck_bookings_deposit_refund_non_negative",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # STL-XXXXXX
    guest_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    property_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Stay (canonical calendar dates)
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Quoted pricing in kobo; frozen onto the snapshot at confirmation
    currency: Mapped[str] = mapped_column(String(3), default="NGN")
    room_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cleaning_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    security_deposit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cancellation_policy: Mapped[CancellationPolicy] = mapped_column(
        enum_column(CancellationPolicy, 20), default=CancellationPolicy.MODERATE
    )

    # State
    status: Mapped[BookingStatus] = mapped_column(
        enum_column(BookingStatus, 20), default=BookingStatus.PENDING, index=True
    )
    stay_status: Mapped[StayStatus] = mapped_column(
        enum_column(StayStatus, 20), default=StayStatus.NONE, index=True
    )
    is_blocked_dates: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    # Stay progress
    checked_in_on: Mapped[date | None] = mapped_column(Date)
    checked_out_on: Mapped[date | None] = mapped_column(Date)
    checked_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    checked_out_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    check_in_confirmed_by: Mapped[DisputeParty | None] = mapped_column(
        enum_column(DisputeParty, 10)
    )
    auto_checked_out: Mapped[bool] = mapped_column(Boolean, default=False)

    # Security deposit outcome, set once the host window has closed
    deposit_refund_amount: Mapped[int | None] = mapped_column(Integer)
    deposit_settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Cancellation
    cancelled_by: Mapped[ActorRole | None] = mapped_column(enum_column(ActorRole, 10))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    refund_amount: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

    # Relationships
    financial_snapshot: Mapped["FinancialSnapshot | None"] = relationship(
        "FinancialSnapshot", back_populates="booking", uselist=False, lazy="selectin"
    )
    disputes: Mapped[list["Dispute"]] = relationship(
        "Dispute", back_populates="booking", lazy="selectin", order_by="Dispute.created_at"
    )

    @property
    def quoted_total(self) -> int:
        """Guest total before the service fee is known."""
        return self.room_fee + self.cleaning_fee + self.security_deposit

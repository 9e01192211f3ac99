"""Financial models: the frozen booking snapshot and escrow release events."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from shortlet.database import Base
from shortlet.domain.release_state import ReleaseEventType, ReleaseStatus
from shortlet.models.types import enum_column

if TYPE_CHECKING:
    from shortlet.models.booking import Booking
    from shortlet.models.payout import PayoutClaim


class FinancialSnapshot(Base):
    """Immutable financial snapshot captured at booking confirmation.

    This record MUST NOT be modified after creation. Every downstream
    amount (release split, cancellation refund, dispute ceiling) is computed
    from these values, never from live configuration.
    """

    __tablename__ = "financial_snapshots"
    __table_args__ = (
        CheckConstraint(
            "room_fee >= 0 AND cleaning_fee >= 0 AND service_fee >= 0 "
            "AND security_deposit >= 0 AND total_charged >= 0",
            name="ck_financial_snapshots_non_negative",
        ),
        CheckConstraint(
            "host_share_amount + platform_share_amount = room_fee",
            name="ck_financial_snapshots_split_reconciles",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, unique=True
    )

    # Amounts (kobo)
    room_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    cleaning_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    service_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    security_deposit: Mapped[int] = mapped_column(Integer, nullable=False)
    total_charged: Mapped[int] = mapped_column(Integer, nullable=False)

    # Rates active at confirmation, copied by value
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    host_share_percent: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    service_fee_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)

    # Room fee split under the frozen rates
    host_share_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_share_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    config_version: Mapped[str] = mapped_column(String(20), nullable=False)

    snapshot_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="financial_snapshot")


class ReleaseEvent(Base):
    """A recorded decision that one fee component of a booking is payable to the host.

    At most one row exists per (booking_id, event_type).
    """

    __tablename__ = "release_events"
    __table_args__ = (
        UniqueConstraint("booking_id", "event_type", name="uq_release_events_booking_event"),
        CheckConstraint(
            "claimed_amount >= 0 AND claimed_amount <= amount",
            name="ck_release_events_claimed_within_amount",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    event_type: Mapped[ReleaseEventType] = mapped_column(
        enum_column(ReleaseEventType), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # host share, kobo
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # First instant at which the event became eligible
    release_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[ReleaseStatus] = mapped_column(
        enum_column(ReleaseStatus, 20), default=ReleaseStatus.PENDING, index=True
    )
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Portion already committed to payout requests
    claimed_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    booking: Mapped["Booking"] = relationship("Booking")
    claims: Mapped[list["PayoutClaim"]] = relationship(
        "PayoutClaim", back_populates="release_event"
    )

    @property
    def available_amount(self) -> int:
        if self.status != ReleaseStatus.RELEASED:
            return 0
        return self.amount - self.claimed_amount

"""Dispute database model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from shortlet.database import Base
from shortlet.domain.dispute_state import (
    DisputeCategory,
    DisputeOutcome,
    DisputeParty,
    DisputeStatus,
)
from shortlet.models.types import enum_column

if TYPE_CHECKING:
    from shortlet.models.booking import Booking


class Dispute(Base):
    """Guest or host dispute against a booking.

    One dispute per party per booking: the unique constraint is what makes a
    consumed window permanent.
    """

    __tablename__ = "disputes"
    __table_args__ = (
        UniqueConstraint("booking_id", "opened_by", name="uq_disputes_booking_party"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )
    opened_by: Mapped[DisputeParty] = mapped_column(enum_column(DisputeParty, 10), nullable=False)
    opened_by_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # Details
    category: Mapped[DisputeCategory] = mapped_column(enum_column(DisputeCategory, 40), nullable=False)
    claimed_amount: Mapped[int | None] = mapped_column(Integer)  # host disputes only, kobo
    writeup: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Status: OPEN → RESOLVED
    status: Mapped[DisputeStatus] = mapped_column(
        enum_column(DisputeStatus, 20), default=DisputeStatus.OPEN, index=True
    )

    # Resolution
    outcome: Mapped[DisputeOutcome | None] = mapped_column(enum_column(DisputeOutcome, 20))
    approved_amount: Mapped[int] = mapped_column(Integer, default=0)
    resolution_notes: Mapped[str | None] = mapped_column(Text)
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="disputes")

"""Payout models: host payout destinations, requests, and the funds each request claims."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, LargeBinary, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from shortlet.database import Base
from shortlet.domain.payout_state import PayoutStatus
from shortlet.models.types import enum_column

if TYPE_CHECKING:
    from shortlet.models.financial import ReleaseEvent


class PayoutAccount(Base):
    """Registered payout destination for a host.

    The row's version is bumped by every payout request, so two concurrent
    requests for the same host cannot both commit.
    """

    __tablename__ = "payout_accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False, index=True)

    bank_code: Mapped[str] = mapped_column(String(20), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_name: Mapped[str] = mapped_column(String(200), nullable=False)
    account_number_encrypted: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    account_number_masked: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}


class PayoutRequest(Base):
    """Host withdrawal against released escrow funds."""

    __tablename__ = "payout_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    payout_account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("payout_accounts.id"), nullable=False
    )
    reference: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )  # PAY-YYYYMMDD-XXXXXX

    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # kobo
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Status: PENDING → PROCESSING → COMPLETED | FAILED
    status: Mapped[PayoutStatus] = mapped_column(
        enum_column(PayoutStatus, 20), default=PayoutStatus.PENDING, index=True
    )

    # Gateway
    gateway: Mapped[str | None] = mapped_column(String(30))
    gateway_transaction_id: Mapped[str | None] = mapped_column(String(100))
    failure_reason: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    processing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    claims: Mapped[list["PayoutClaim"]] = relationship(
        "PayoutClaim", back_populates="payout_request", lazy="selectin"
    )


class PayoutClaim(Base):
    """Portion of one release event committed to one payout request.

    ``released_at`` is set when a failed request hands the funds back.
    """

    __tablename__ = "payout_claims"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payout_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("payout_requests.id"), nullable=False, index=True
    )
    release_event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("release_events.id"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    payout_request: Mapped["PayoutRequest"] = relationship("PayoutRequest", back_populates="claims")
    release_event: Mapped["ReleaseEvent"] = relationship(
        "ReleaseEvent", back_populates="claims", lazy="selectin"
    )

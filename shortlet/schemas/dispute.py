"""Dispute schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shortlet.domain.dispute_state import (
    DisputeCategory,
    DisputeOutcome,
    DisputeParty,
    DisputeStatus,
)


class DisputeCreate(BaseModel):
    """Schema for opening a dispute.

    ``claimed_amount`` is required for host deposit claims and ignored for
    guest disputes.
    """

    booking_id: UUID
    category: DisputeCategory
    writeup: str = Field(..., max_length=5000)
    evidence_urls: list[str] = Field(default_factory=list, max_length=20)
    claimed_amount: int | None = Field(default=None, ge=0)


class DisputeResolve(BaseModel):
    """Schema for recording an adjudication outcome."""

    outcome: DisputeOutcome
    approved_amount: int | None = Field(default=None, ge=0)
    notes: str | None = Field(None, max_length=5000)


class DisputeResponse(BaseModel):
    """Schema for dispute response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    opened_by: DisputeParty
    opened_by_user_id: UUID
    category: DisputeCategory
    claimed_amount: int | None
    writeup: str
    evidence_urls: list[str]
    status: DisputeStatus
    outcome: DisputeOutcome | None
    approved_amount: int
    resolution_notes: str | None
    resolved_by: UUID | None
    resolved_at: datetime | None
    created_at: datetime

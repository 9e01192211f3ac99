"""Dispute endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.api.deps import get_current_actor, get_current_admin, get_db
from shortlet.domain.actor import Actor, assert_can_view
from shortlet.repositories.booking import BookingRepository
from shortlet.repositories.dispute import DisputeRepository
from shortlet.schemas.dispute import DisputeCreate, DisputeResolve, DisputeResponse
from shortlet.services.dispute_service import dispute_service

router = APIRouter()


@router.post("", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def open_dispute(
    request: DisputeCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DisputeResponse:
    """Open a dispute in the caller's dispute window."""
    dispute = await dispute_service.open_dispute(
        db,
        booking_id=request.booking_id,
        actor=actor,
        category=request.category,
        writeup=request.writeup,
        evidence_urls=request.evidence_urls,
        claimed_amount=request.claimed_amount,
    )
    return DisputeResponse.model_validate(dispute)


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DisputeResponse:
    """Get a dispute (parties to the booking or an admin)."""
    dispute = await DisputeRepository(db).get_or_404(dispute_id)
    booking = await BookingRepository(db).get_or_404(dispute.booking_id)
    assert_can_view(actor, booking)
    return DisputeResponse.model_validate(dispute)


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: UUID,
    request: DisputeResolve,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DisputeResponse:
    """Record the adjudication outcome of an open dispute (admin only)."""
    dispute = await dispute_service.resolve_dispute(
        db,
        dispute_id=dispute_id,
        outcome=request.outcome,
        approved_amount=request.approved_amount,
        resolved_by=admin.user_id,
        notes=request.notes,
    )
    return DisputeResponse.model_validate(dispute)

"""Booking lifecycle endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.api.deps import get_current_actor, get_current_admin, get_db
from shortlet.core.exceptions import AuthorizationError
from shortlet.domain.actor import Actor, assert_can_view
from shortlet.domain.booking_state import ActorRole
from shortlet.repositories.booking import BookingRepository
from shortlet.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingResponse,
    WindowResponse,
    WindowsResponse,
)
from shortlet.services.booking_service import booking_service
from shortlet.services.snapshot_service import snapshot_service

router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Create a pending booking for the calling guest."""
    if actor.role != ActorRole.GUEST:
        raise AuthorizationError("Only guests can create bookings")

    booking = await booking_service.create_booking(
        db,
        guest_id=actor.user_id,
        host_id=request.host_id,
        property_id=request.property_id,
        check_in_date=request.check_in_date,
        check_out_date=request.check_out_date,
        room_fee=request.room_fee,
        cleaning_fee=request.cleaning_fee,
        security_deposit=request.security_deposit,
        cancellation_policy=request.cancellation_policy,
    )
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Get booking details (its guest, its host or an admin)."""
    booking = await BookingRepository(db).get_or_404(booking_id)
    assert_can_view(actor, booking)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: UUID,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Confirm a pending booking and freeze its financial terms (admin only)."""
    booking = await snapshot_service.confirm_booking(db, booking_id, confirmed_by=admin.user_id)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/activate", response_model=BookingResponse)
async def activate_booking(
    booking_id: UUID,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Activate a confirmed booking whose check-in day has arrived (admin only)."""
    booking = await booking_service.activate_booking(db, booking_id)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
async def check_in(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Record check-in by the booking's guest or host."""
    booking = await booking_service.check_in(db, booking_id, actor)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/check-out", response_model=BookingResponse)
async def check_out(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Record check-out by the booking's guest."""
    booking = await booking_service.check_out(db, booking_id, actor)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    request: BookingCancelRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Cancel a pending or confirmed booking."""
    booking = await booking_service.cancel_booking(db, booking_id, actor, reason=request.reason)
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}/dispute-windows", response_model=WindowsResponse)
async def get_dispute_windows(
    booking_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WindowsResponse:
    """Current guest and host dispute windows."""
    booking, windows = await booking_service.get_windows(db, booking_id)
    assert_can_view(actor, booking)
    return WindowsResponse(
        booking_id=booking.id,
        guest=WindowResponse.model_validate(windows.guest),
        host=WindowResponse.model_validate(windows.host),
    )

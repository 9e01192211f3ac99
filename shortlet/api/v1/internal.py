"""Internal operational endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlet.api.deps import get_current_admin, get_session_factory
from shortlet.domain.actor import Actor
from shortlet.services.booking_service import booking_service
from shortlet.services.settlement_service import settlement_service

router = APIRouter()


class SettlementPassResponse(BaseModel):
    """Counters of one settlement pass."""

    processed: int
    released: int
    completed: int
    errors: int


class ActivationPassResponse(BaseModel):
    due: int
    activated: int
    errors: int


@router.post("/settlement-pass", response_model=SettlementPassResponse)
async def trigger_settlement_pass(
    admin: Annotated[Actor, Depends(get_current_admin)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> SettlementPassResponse:
    """Run one settlement pass now (admin only).

    Every booking is settled in its own transaction, so this does not use
    the request's session.
    """
    result = await settlement_service.run_settlement_pass(session_factory=session_factory)
    return SettlementPassResponse(**result.to_dict())


@router.post("/activation-pass", response_model=ActivationPassResponse)
async def trigger_activation_pass(
    admin: Annotated[Actor, Depends(get_current_admin)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> ActivationPassResponse:
    """Activate every confirmed booking whose check-in day has arrived (admin only)."""
    result = await booking_service.activate_due_bookings(session_factory=session_factory)
    return ActivationPassResponse(**result)

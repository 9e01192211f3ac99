"""Payout endpoints for hosts, plus the gateway callback."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.api.deps import get_current_actor, get_current_admin, get_current_host, get_db
from shortlet.config import settings
from shortlet.core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from shortlet.domain.actor import Actor
from shortlet.gateways.manual import ManualGateway
from shortlet.repositories.payout import PayoutRequestRepository
from shortlet.repositories.release_event import ReleaseEventRepository
from shortlet.schemas.payout import (
    BalanceResponse,
    PayoutAccountResponse,
    PayoutAccountUpdate,
    PayoutCallback,
    PayoutRequestCreate,
    PayoutRequestResponse,
)
from shortlet.services.payout_service import payout_service

router = APIRouter()


@router.put("/account", response_model=PayoutAccountResponse)
async def register_payout_account(
    request: PayoutAccountUpdate,
    host: Annotated[Actor, Depends(get_current_host)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PayoutAccountResponse:
    """Register or replace the host's payout bank account."""
    account = await payout_service.register_payout_account(
        db,
        host_id=host.user_id,
        bank_code=request.bank_code,
        bank_name=request.bank_name,
        account_name=request.account_name,
        account_number=request.account_number,
    )
    return PayoutAccountResponse.model_validate(account)


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    host: Annotated[Actor, Depends(get_current_host)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BalanceResponse:
    """Released funds not yet committed to a payout request."""
    balance = await payout_service.get_available_balance(db, host.user_id)
    total = await ReleaseEventRepository(db).total_released(host.user_id)
    return BalanceResponse(
        host_id=host.user_id,
        available_balance=balance,
        total_released=total,
        currency=settings.currency,
    )


@router.get("", response_model=list[PayoutRequestResponse])
async def list_payouts(
    host: Annotated[Actor, Depends(get_current_host)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[PayoutRequestResponse]:
    """Get host's payout history, newest first."""
    requests = await payout_service.list_requests(db, host.user_id)
    return [PayoutRequestResponse.model_validate(r) for r in requests]


@router.post("", response_model=PayoutRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_payout(
    request: PayoutRequestCreate,
    host: Annotated[Actor, Depends(get_current_host)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PayoutRequestResponse:
    """Request a payout from the available balance."""
    payout = await payout_service.request_payout(db, host.user_id, request.amount, currency=request.currency)
    return PayoutRequestResponse.model_validate(payout)


@router.post("/callback", response_model=PayoutRequestResponse)
async def payout_callback(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    x_signature: Annotated[str | None, Header()] = None,
) -> PayoutRequestResponse:
    """Apply a signed gateway outcome (COMPLETED or FAILED)."""
    body = await request.body()
    data = ManualGateway().verify_webhook(body, x_signature or "")
    if data is None:
        raise AuthenticationError("Invalid payout callback signature")
    try:
        callback = PayoutCallback.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid payout callback payload", errors=e.errors(include_url=False))

    payout = await payout_service.handle_gateway_callback(
        db,
        reference=callback.reference,
        status=callback.status,
        transaction_id=callback.transaction_id,
        failure_reason=callback.failure_reason,
    )
    return PayoutRequestResponse.model_validate(payout)


@router.get("/{request_id}", response_model=PayoutRequestResponse)
async def get_payout(
    request_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PayoutRequestResponse:
    """Get a payout request (its host or an admin)."""
    payout = await PayoutRequestRepository(db).get_or_404(request_id)
    if not actor.is_admin and payout.host_id != actor.user_id:
        raise AuthorizationError("Not your payout request")
    return PayoutRequestResponse.model_validate(payout)


@router.post("/{request_id}/dispatch", response_model=PayoutRequestResponse)
async def dispatch_payout(
    request_id: UUID,
    admin: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PayoutRequestResponse:
    """Hand a pending payout to the gateway (admin only)."""
    payout = await payout_service.dispatch_payout(db, request_id)
    return PayoutRequestResponse.model_validate(payout)

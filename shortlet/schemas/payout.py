"""Payout account and payout request schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shortlet.domain.payout_state import PayoutStatus


class PayoutAccountUpdate(BaseModel):
    """Schema for registering or replacing a payout account."""

    bank_code: str = Field(..., min_length=2, max_length=20)
    bank_name: str = Field(..., min_length=2, max_length=100)
    account_name: str = Field(..., min_length=2, max_length=200)
    account_number: str = Field(..., min_length=6, max_length=24)


class PayoutAccountResponse(BaseModel):
    """Payout account with the account number masked."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    host_id: UUID
    bank_code: str
    bank_name: str
    account_name: str
    account_number_masked: str
    updated_at: datetime


class BalanceResponse(BaseModel):
    """Host's available balance (kobo)."""

    host_id: UUID
    available_balance: int
    total_released: int
    currency: str


class PayoutRequestCreate(BaseModel):
    """Schema for requesting a payout."""

    amount: int = Field(..., description="Amount in kobo")
    currency: str | None = Field(None, description="Currency of the funds to withdraw")


class PayoutClaimResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    release_event_id: UUID
    amount: int
    released_at: datetime | None


class PayoutRequestResponse(BaseModel):
    """Schema for payout request response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    host_id: UUID
    reference: str
    amount: int
    currency: str
    status: PayoutStatus
    gateway: str | None
    gateway_transaction_id: str | None
    failure_reason: str | None
    requested_at: datetime
    processing_at: datetime | None
    completed_at: datetime | None
    failed_at: datetime | None
    claims: list[PayoutClaimResponse] = []


class PayoutCallback(BaseModel):
    """Signed gateway callback body."""

    reference: str
    status: PayoutStatus
    transaction_id: str | None = None
    failure_reason: str | None = None

"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shortlet.domain.booking_state import ActorRole, BookingStatus, StayStatus
from shortlet.domain.cancellation_policy import CancellationPolicy
from shortlet.domain.dispute_state import DisputeParty, DisputeStatus
from shortlet.domain.dispute_window import WindowState


class BookingCreate(BaseModel):
    """Schema for creating a pending booking with quoted fees (kobo)."""

    host_id: UUID
    property_id: UUID
    check_in_date: date
    check_out_date: date
    room_fee: int = Field(..., gt=0)
    cleaning_fee: int = Field(default=0, ge=0)
    security_deposit: int = Field(default=0, ge=0)
    cancellation_policy: CancellationPolicy = CancellationPolicy.MODERATE

    @field_validator("check_out_date")
    @classmethod
    def validate_checkout(cls, v: date, info) -> date:
        check_in = info.data.get("check_in_date")
        if check_in and v <= check_in:
            raise ValueError("check_out_date must be after check_in_date")
        return v


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    reason: str | None = Field(None, max_length=500)


class SnapshotResponse(BaseModel):
    """Frozen financial terms of a confirmed booking."""

    model_config = ConfigDict(from_attributes=True)

    room_fee: int
    cleaning_fee: int
    service_fee: int
    security_deposit: int
    total_charged: int
    commission_rate: Decimal
    host_share_percent: Decimal
    service_fee_rate: Decimal
    host_share_amount: int
    platform_share_amount: int
    currency: str
    config_version: str
    snapshot_at: datetime


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_number: str
    guest_id: UUID
    host_id: UUID
    property_id: UUID

    # Dates
    check_in_date: date
    check_out_date: date

    # Quoted pricing (kobo)
    currency: str
    room_fee: int
    cleaning_fee: int
    security_deposit: int
    cancellation_policy: CancellationPolicy

    # Status
    status: BookingStatus
    stay_status: StayStatus
    is_blocked_dates: bool
    checked_in_on: date | None = None
    checked_out_on: date | None = None
    check_in_confirmed_by: DisputeParty | None = None
    auto_checked_out: bool = False

    # Security deposit outcome
    deposit_refund_amount: int | None = None
    deposit_settled_at: datetime | None = None

    # Cancellation
    cancelled_by: ActorRole | None = None
    cancellation_reason: str | None = None
    refund_amount: int = 0

    # Timestamps
    confirmed_at: datetime | None = None
    activated_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime

    financial_snapshot: SnapshotResponse | None = None


class WindowResponse(BaseModel):
    """One party's dispute window."""

    model_config = ConfigDict(from_attributes=True)

    party: DisputeParty
    state: WindowState
    opens_on: date | None = None
    deadline: date | None = None
    dispute_status: DisputeStatus | None = None


class WindowsResponse(BaseModel):
    """Both dispute windows of a booking as of now."""

    booking_id: UUID
    guest: WindowResponse
    host: WindowResponse

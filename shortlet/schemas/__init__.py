"""Pydantic schemas for API validation."""

from shortlet.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingResponse,
    SnapshotResponse,
    WindowResponse,
    WindowsResponse,
)
from shortlet.schemas.dispute import DisputeCreate, DisputeResolve, DisputeResponse
from shortlet.schemas.payout import (
    BalanceResponse,
    PayoutAccountResponse,
    PayoutAccountUpdate,
    PayoutCallback,
    PayoutClaimResponse,
    PayoutRequestCreate,
    PayoutRequestResponse,
)

__all__ = [
    "BalanceResponse",
    "BookingCancelRequest",
    "BookingCreate",
    "BookingResponse",
    "DisputeCreate",
    "DisputeResolve",
    "DisputeResponse",
    "PayoutAccountResponse",
    "PayoutAccountUpdate",
    "PayoutCallback",
    "PayoutClaimResponse",
    "PayoutRequestCreate",
    "PayoutRequestResponse",
    "SnapshotResponse",
    "WindowResponse",
    "WindowsResponse",
]

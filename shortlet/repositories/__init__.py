"""Per-entity repositories over an AsyncSession."""

from shortlet.repositories.base import BaseRepository, storage_errors
from shortlet.repositories.booking import BookingRepository
from shortlet.repositories.dispute import DisputeRepository
from shortlet.repositories.payout import PayoutAccountRepository, PayoutRequestRepository
from shortlet.repositories.release_event import ReleaseEventRepository

__all__ = [
    "BaseRepository",
    "storage_errors",
    "BookingRepository",
    "DisputeRepository",
    "ReleaseEventRepository",
    "PayoutAccountRepository",
    "PayoutRequestRepository",
]

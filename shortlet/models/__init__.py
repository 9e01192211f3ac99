"""Database models."""

from shortlet.models.admin import AuditLog
from shortlet.models.booking import Booking
from shortlet.models.dispute import Dispute
from shortlet.models.financial import FinancialSnapshot, ReleaseEvent
from shortlet.models.payout import PayoutAccount, PayoutClaim, PayoutRequest

__all__ = [
    # Booking
    "Booking",
    # Financial
    "FinancialSnapshot",
    "ReleaseEvent",
    # Dispute
    "Dispute",
    # Payout
    "PayoutAccount",
    "PayoutRequest",
    "PayoutClaim",
    # Admin
    "AuditLog",
]

from shortlet.core.immutability import register_immutability_enforcement  # noqa: E402

register_immutability_enforcement()

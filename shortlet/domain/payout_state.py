"""Payout request state machine.

States:
- PENDING: Funds claimed from the host's released balance, not yet sent
- PROCESSING: Accepted by the payment gateway, transfer in flight
- COMPLETED: Gateway confirmed the transfer
- FAILED: Gateway rejected or failed the transfer; claimed funds return to the pool
"""

from enum import Enum

from shortlet.core.exceptions import InvalidTransitionError


class PayoutStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


PAYOUT_TRANSITIONS: dict[PayoutStatus, set[PayoutStatus]] = {
    PayoutStatus.PENDING: {PayoutStatus.PROCESSING, PayoutStatus.FAILED},
    PayoutStatus.PROCESSING: {PayoutStatus.COMPLETED, PayoutStatus.FAILED},
    PayoutStatus.COMPLETED: set(),
    PayoutStatus.FAILED: set(),
}


def assert_payout_transition(current: PayoutStatus, target: PayoutStatus) -> None:
    """Validate payout state transition.

    Args:
        current: Current payout status
        target: Target payout status

    Raises:
        InvalidTransitionError: If transition is not allowed
    """
    allowed = PAYOUT_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransitionError(
            f"Invalid payout transition: {current.value} → {target.value}"
        )

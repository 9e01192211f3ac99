"""Escrow release event types and statuses."""

from enum import Enum


class ReleaseEventType(str, Enum):
    RELEASE_ROOM_FEE = "RELEASE_ROOM_FEE"
    RELEASE_CLEANING_FEE = "RELEASE_CLEANING_FEE"
    # Approved host claim against the security deposit
    RELEASE_DEPOSIT_CLAIM = "RELEASE_DEPOSIT_CLAIM"


class ReleaseStatus(str, Enum):
    PENDING = "PENDING"
    RELEASED = "RELEASED"


def required_event_types(cleaning_fee: int) -> list[ReleaseEventType]:
    """Fee event types a booking must release before it can complete.

    The cleaning-fee event only exists when there is a cleaning fee. The
    deposit-claim event is settled separately, with the security deposit.
    """
    events = [ReleaseEventType.RELEASE_ROOM_FEE]
    if cleaning_fee > 0:
        events.append(ReleaseEventType.RELEASE_CLEANING_FEE)
    return events

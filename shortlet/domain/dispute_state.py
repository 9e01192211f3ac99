"""Dispute state machine and category ceilings.

States: OPEN → RESOLVED

Guests dispute the room fee, hosts claim against the security deposit.
Ceilings are applied when the dispute is resolved, not when it is filed.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from shortlet.core.exceptions import InvalidTransitionError


class DisputeParty(str, Enum):
    GUEST = "GUEST"
    HOST = "HOST"


class DisputeStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class DisputeOutcome(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    PARTIAL = "PARTIAL"


class DisputeSubject(str, Enum):
    ROOM_FEE = "ROOM_FEE"
    SECURITY_DEPOSIT = "SECURITY_DEPOSIT"


class DisputeCategory(str, Enum):
    # Guest
    SAFETY_UNINHABITABLE = "SAFETY_UNINHABITABLE"
    MAJOR_MISREPRESENTATION = "MAJOR_MISREPRESENTATION"
    MISSING_AMENITIES_CLEANLINESS = "MISSING_AMENITIES_CLEANLINESS"
    MINOR_INCONVENIENCE = "MINOR_INCONVENIENCE"
    # Host
    PROPERTY_DAMAGE = "PROPERTY_DAMAGE"
    MISSING_ITEMS = "MISSING_ITEMS"
    CLEANING_REQUIRED = "CLEANING_REQUIRED"
    OTHER_DEPOSIT_CLAIM = "OTHER_DEPOSIT_CLAIM"


DISPUTE_TRANSITIONS: dict[DisputeStatus, set[DisputeStatus]] = {
    DisputeStatus.OPEN: {DisputeStatus.RESOLVED},
    DisputeStatus.RESOLVED: set(),
}

# category -> (party, subject, max share of the subject amount)
CATEGORY_RULES: dict[DisputeCategory, tuple[DisputeParty, DisputeSubject, Decimal]] = {
    DisputeCategory.MINOR_INCONVENIENCE: (DisputeParty.GUEST, DisputeSubject.ROOM_FEE, Decimal("0.30")),
    DisputeCategory.MISSING_AMENITIES_CLEANLINESS: (
        DisputeParty.GUEST,
        DisputeSubject.ROOM_FEE,
        Decimal("0.30"),
    ),
    DisputeCategory.MAJOR_MISREPRESENTATION: (
        DisputeParty.GUEST,
        DisputeSubject.ROOM_FEE,
        Decimal("1.00"),
    ),
    DisputeCategory.SAFETY_UNINHABITABLE: (DisputeParty.GUEST, DisputeSubject.ROOM_FEE, Decimal("1.00")),
    DisputeCategory.PROPERTY_DAMAGE: (DisputeParty.HOST, DisputeSubject.SECURITY_DEPOSIT, Decimal("1.00")),
    DisputeCategory.MISSING_ITEMS: (DisputeParty.HOST, DisputeSubject.SECURITY_DEPOSIT, Decimal("1.00")),
    DisputeCategory.CLEANING_REQUIRED: (DisputeParty.HOST, DisputeSubject.SECURITY_DEPOSIT, Decimal("1.00")),
    DisputeCategory.OTHER_DEPOSIT_CLAIM: (
        DisputeParty.HOST,
        DisputeSubject.SECURITY_DEPOSIT,
        Decimal("1.00"),
    ),
}

CATEGORIES_BY_PARTY: dict[DisputeParty, frozenset[DisputeCategory]] = {
    party: frozenset(c for c, (p, _, _) in CATEGORY_RULES.items() if p == party)
    for party in DisputeParty
}


def assert_dispute_transition(current_status: DisputeStatus, new_status: DisputeStatus) -> None:
    """Validate dispute state transition."""
    allowed = DISPUTE_TRANSITIONS.get(current_status, set())
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Invalid dispute transition: {current_status.value} → {new_status.value}"
        )


def category_party(category: DisputeCategory) -> DisputeParty:
    return CATEGORY_RULES[category][0]


def compute_ceiling(category: DisputeCategory, room_fee: int, security_deposit: int) -> int:
    """Maximum refund (guest) or claim (host) for a category.

    Args:
        category: Dispute category
        room_fee: Frozen room fee in minor units
        security_deposit: Frozen security deposit in minor units

    Returns:
        Ceiling in minor units, rounded half up
    """
    _, subject, share = CATEGORY_RULES[category]
    base = room_fee if subject == DisputeSubject.ROOM_FEE else security_deposit
    return int((Decimal(base) * share).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def can_resolve_dispute(status: DisputeStatus) -> tuple[bool, str | None]:
    """Check if dispute can be resolved."""
    if status == DisputeStatus.RESOLVED:
        return False, "Dispute is already resolved"
    return True, None

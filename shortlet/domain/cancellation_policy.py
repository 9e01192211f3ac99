"""Cancellation policy domain logic.

Policies:
- flexible: Full refund up to 1 day before check-in, 50% after
- moderate: Full refund up to 5 days before, 50% up to 1 day, 0% after
- strict: 50% refund up to 7 days before, 0% after

Lead time is counted in canonical calendar days. The refundable base is the
total frozen on the booking's financial snapshot.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from shortlet.core.exceptions import ValidationError


class CancellationPolicy(str, Enum):
    """Cancellation policy types."""

    FLEXIBLE = "flexible"
    MODERATE = "moderate"
    STRICT = "strict"


# (minimum days before check-in, refund percentage); first match wins
POLICY_RULES: dict[CancellationPolicy, list[tuple[int, Decimal]]] = {
    CancellationPolicy.FLEXIBLE: [
        (1, Decimal("100")),
        (0, Decimal("50")),
    ],
    CancellationPolicy.MODERATE: [
        (5, Decimal("100")),
        (1, Decimal("50")),
        (0, Decimal("0")),
    ],
    CancellationPolicy.STRICT: [
        (7, Decimal("50")),
        (0, Decimal("0")),
    ],
}


def _coerce(policy: str | CancellationPolicy) -> CancellationPolicy:
    try:
        return CancellationPolicy(policy)
    except ValueError:
        raise ValidationError(f"Unknown cancellation policy: {policy}")


def calculate_refund_percentage(
    policy: str | CancellationPolicy,
    check_in_date: date,
    cancellation_date: date,
) -> Decimal:
    """Calculate refund percentage based on policy and timing.

    Args:
        policy: The cancellation policy type
        check_in_date: Booking check-in date
        cancellation_date: Canonical calendar day of the cancellation

    Returns:
        Decimal: Refund percentage (0-100)
    """
    days_before = (check_in_date - cancellation_date).days
    for min_days, refund_pct in POLICY_RULES[_coerce(policy)]:
        if days_before >= min_days:
            return refund_pct
    return Decimal("0")


def calculate_refund_amount(
    policy: str | CancellationPolicy,
    check_in_date: date,
    cancellation_date: date,
    total_charged: int,
) -> int:
    """Refund in minor units for a cancellation on ``cancellation_date``."""
    refund_pct = calculate_refund_percentage(policy, check_in_date, cancellation_date)
    amount = (Decimal(total_charged) * refund_pct / Decimal("100")).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return int(amount)


def get_policy_description(policy: str | CancellationPolicy) -> str:
    """Get human-readable policy description."""
    descriptions = {
        CancellationPolicy.FLEXIBLE: (
            "Full refund up to 1 day before check-in. "
            "50% refund if cancelled on the check-in day or later."
        ),
        CancellationPolicy.MODERATE: (
            "Full refund up to 5 days before check-in. "
            "50% refund if cancelled 1-4 days before. "
            "No refund on the check-in day."
        ),
        CancellationPolicy.STRICT: (
            "50% refund up to 7 days before check-in. "
            "No refund if cancelled less than 7 days before."
        ),
    }
    return descriptions[_coerce(policy)]

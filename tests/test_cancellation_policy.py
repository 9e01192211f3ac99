"""Tests for cancellation policy refunds."""

from datetime import date
from decimal import Decimal

import pytest

from shortlet.core.exceptions import ValidationError
from shortlet.domain.cancellation_policy import (
    CancellationPolicy,
    calculate_refund_amount,
    calculate_refund_percentage,
    get_policy_description,
)

CHECK_IN = date(2024, 6, 10)


@pytest.mark.parametrize(
    "policy,cancelled_on,expected",
    [
        (CancellationPolicy.FLEXIBLE, date(2024, 6, 9), Decimal("100")),
        (CancellationPolicy.FLEXIBLE, date(2024, 6, 10), Decimal("50")),
        (CancellationPolicy.MODERATE, date(2024, 6, 5), Decimal("100")),
        (CancellationPolicy.MODERATE, date(2024, 6, 7), Decimal("50")),
        (CancellationPolicy.MODERATE, date(2024, 6, 10), Decimal("0")),
        (CancellationPolicy.STRICT, date(2024, 6, 3), Decimal("50")),
        (CancellationPolicy.STRICT, date(2024, 6, 4), Decimal("0")),
    ],
)
def test_refund_percentage(policy, cancelled_on, expected):
    assert calculate_refund_percentage(policy, CHECK_IN, cancelled_on) == expected


def test_refund_amount_rounds_half_up():
    assert calculate_refund_amount("moderate", CHECK_IN, date(2024, 6, 8), 100_001) == 50_001


def test_unknown_policy():
    with pytest.raises(ValidationError):
        calculate_refund_percentage("lenient", CHECK_IN, date(2024, 6, 1))


def test_policy_description():
    assert "7 days" in get_policy_description(CancellationPolicy.STRICT)

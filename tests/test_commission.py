"""Tests for commission math and finance configuration validation."""

from decimal import Decimal

import pytest

from shortlet.config import CommissionTier, VolumeDiscount
from shortlet.core.exceptions import InvalidConfigError
from shortlet.services.commission_service import (
    FinanceConfig,
    commission_service,
    validate_finance_config,
)


def test_split_room_fee():
    split = commission_service.split_room_fee(100_000, Decimal("0.10"))
    assert split.host_share_amount == 90_000
    assert split.platform_share_amount == 10_000


def test_split_rounds_platform_share_half_up():
    split = commission_service.split_room_fee(12_345, Decimal("0.10"))
    assert split.platform_share_amount == 1_235
    assert split.host_share_amount == 11_110
    assert split.host_share_amount + split.platform_share_amount == 12_345


@pytest.mark.parametrize("room_fee", [1, 7, 99_999, 123_457])
def test_split_always_reconciles(room_fee):
    split = commission_service.split_room_fee(room_fee, Decimal("0.15"))
    assert split.host_share_amount + split.platform_share_amount == room_fee


def test_snapshot_amounts():
    config = validate_finance_config(
        FinanceConfig(
            commission_rate=Decimal("0.10"),
            host_share_percent=Decimal("0.90"),
            service_fee_rate=Decimal("0.02"),
        )
    )
    amounts = commission_service.calculate_snapshot_amounts(
        room_fee=100_000, cleaning_fee=20_000, security_deposit=50_000, config=config
    )
    assert amounts.service_fee == 2_400
    assert amounts.total_charged == 172_400
    assert amounts.host_share_amount == 90_000
    assert amounts.platform_share_amount == 10_000


@pytest.mark.parametrize(
    "config",
    [
        None,
        FinanceConfig(commission_rate=None, host_share_percent=Decimal("0.9"), service_fee_rate=Decimal("0")),
        FinanceConfig(commission_rate=Decimal("1.5"), host_share_percent=Decimal("0"), service_fee_rate=Decimal("0")),
        FinanceConfig(commission_rate=Decimal("0.1"), host_share_percent=Decimal("0.8"), service_fee_rate=Decimal("0")),
        FinanceConfig(commission_rate="abc", host_share_percent=Decimal("0.9"), service_fee_rate=Decimal("0")),
        FinanceConfig(
            commission_rate=Decimal("0.1"),
            host_share_percent=Decimal("0.9"),
            service_fee_rate=Decimal("0.02"),
            currency="",
        ),
    ],
)
def test_invalid_config_rejected(config):
    with pytest.raises(InvalidConfigError):
        validate_finance_config(config)


TIERS = (
    CommissionTier(min_amount=0, max_amount=50_000_000, rate=Decimal("0.10")),
    CommissionTier(min_amount=50_000_001, max_amount=200_000_000, rate=Decimal("0.07")),
    CommissionTier(min_amount=200_000_001, rate=Decimal("0.05")),
)
DISCOUNTS = (
    VolumeDiscount(volume=500_000_000, reduction_rate=Decimal("0.005")),
    VolumeDiscount(volume=1_000_000_000, reduction_rate=Decimal("0.03")),
)


def tiered(tiers=TIERS, discounts=DISCOUNTS, cap=Decimal("0.02")):
    return FinanceConfig(
        commission_rate=Decimal("0.10"),
        host_share_percent=Decimal("0.90"),
        service_fee_rate=Decimal("0.02"),
        commission_tiers=tiers,
        volume_discounts=discounts,
        discount_cap_rate=cap,
    )


@pytest.mark.parametrize(
    "room_fee, monthly_volume, rate",
    [
        (100_000, 0, "0.10"),
        (50_000_000, 0, "0.10"),
        (50_000_001, 0, "0.07"),
        (300_000_000, 0, "0.05"),
        (100_000, 500_000_000, "0.095"),
        # 0.03 discount held to the 0.02 cap
        (100_000, 1_000_000_000, "0.08"),
    ],
)
def test_tiered_commission_rate(room_fee, monthly_volume, rate):
    config = validate_finance_config(tiered())
    assert commission_service.resolve_commission_rate(room_fee, monthly_volume, config) == Decimal(rate)


def test_flat_rate_without_tiers():
    config = validate_finance_config(
        FinanceConfig(
            commission_rate=Decimal("0.12"),
            host_share_percent=Decimal("0.88"),
            service_fee_rate=Decimal("0"),
        )
    )
    assert commission_service.resolve_commission_rate(10_000_000, 2_000_000_000, config) == Decimal("0.12")


def test_resolved_rate_freezes_as_flat_config():
    config = validate_finance_config(tiered()).with_commission_rate(Decimal("0.07"))
    assert config.commission_tiers == ()
    assert validate_finance_config(config).host_share_percent == Decimal("0.93")


@pytest.mark.parametrize(
    "config",
    [
        tiered(tiers=(CommissionTier(min_amount=1, rate=Decimal("0.10")),)),
        tiered(
            tiers=(
                CommissionTier(min_amount=0, max_amount=100_000, rate=Decimal("0.10")),
                CommissionTier(min_amount=200_000, rate=Decimal("0.08")),
            )
        ),
        tiered(tiers=(CommissionTier(min_amount=0, max_amount=100_000, rate=Decimal("0.10")),)),
        tiered(
            tiers=(
                CommissionTier(min_amount=0, rate=Decimal("0.10")),
                CommissionTier(min_amount=1, rate=Decimal("0.08")),
            )
        ),
        tiered(tiers=(CommissionTier(min_amount=0, rate=Decimal("0.30")),)),
        tiered(discounts=(VolumeDiscount(volume=0, reduction_rate=Decimal("0.01")),)),
        tiered(cap=Decimal("0.06")),
    ],
)
def test_invalid_tiers_rejected(config):
    with pytest.raises(InvalidConfigError):
        validate_finance_config(config)

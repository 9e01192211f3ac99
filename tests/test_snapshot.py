"""Tests for the finance snapshot written at confirmation."""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from shortlet.config import CommissionTier, VolumeDiscount, settings
from shortlet.core.exceptions import InvalidConfigError, InvalidTransitionError
from shortlet.core.immutability import ImmutabilityViolationError
from shortlet.domain.booking_state import BookingStatus
from shortlet.domain.release_state import ReleaseEventType
from shortlet.models.booking import Booking
from shortlet.services.booking_service import booking_service
from shortlet.services.commission_service import FinanceConfig
from shortlet.services.settlement_service import settlement_service
from shortlet.services.snapshot_service import snapshot_service

from helpers import BOOKED_ON, CHECK_IN, CHECK_OUT, at


async def test_confirm_freezes_amounts(confirmed_booking, fresh):
    booking = await fresh(Booking, confirmed_booking.id)
    snapshot = booking.financial_snapshot

    assert booking.status == BookingStatus.CONFIRMED
    assert snapshot.room_fee == 100_000
    assert snapshot.cleaning_fee == 20_000
    assert snapshot.security_deposit == 50_000
    assert snapshot.service_fee == 2_400
    assert snapshot.total_charged == 172_400
    assert snapshot.commission_rate == Decimal("0.10")
    assert snapshot.host_share_amount == 90_000
    assert snapshot.platform_share_amount == 10_000
    assert snapshot.config_version == "v1"


async def test_rate_change_does_not_touch_confirmed_booking(confirmed_booking, fresh, monkeypatch):
    monkeypatch.setattr(settings, "commission_rate", Decimal("0.20"))
    monkeypatch.setattr(settings, "host_share_percent", Decimal("0.80"))

    booking = await fresh(Booking, confirmed_booking.id)
    snapshot = booking.financial_snapshot
    assert snapshot.commission_rate == Decimal("0.10")
    assert settlement_service.release_amount(snapshot, ReleaseEventType.RELEASE_ROOM_FEE) == 90_000


async def test_new_confirmation_uses_live_rates(db, pending_booking, monkeypatch):
    monkeypatch.setattr(settings, "commission_rate", Decimal("0.20"))
    monkeypatch.setattr(settings, "host_share_percent", Decimal("0.80"))

    booking = await snapshot_service.confirm_booking(db, pending_booking.id, now=at(BOOKED_ON))
    assert booking.financial_snapshot.host_share_amount == 80_000
    assert booking.financial_snapshot.platform_share_amount == 20_000


async def test_invalid_config_leaves_booking_pending(db, pending_booking, fresh):
    bad = FinanceConfig(commission_rate=None, host_share_percent=Decimal("0.9"), service_fee_rate=Decimal("0"))
    with pytest.raises(InvalidConfigError):
        await snapshot_service.confirm_booking(db, pending_booking.id, config=bad, now=at(BOOKED_ON))
    await db.rollback()

    booking = await fresh(Booking, pending_booking.id)
    assert booking.status == BookingStatus.PENDING
    assert booking.financial_snapshot is None


async def test_confirm_twice_rejected(db, confirmed_booking):
    with pytest.raises(InvalidTransitionError):
        await snapshot_service.confirm_booking(db, confirmed_booking.id, now=at(BOOKED_ON))


async def test_snapshot_is_immutable(db, confirmed_booking):
    snapshot = confirmed_booking.financial_snapshot
    snapshot.room_fee = 1
    with pytest.raises(ImmutabilityViolationError):
        await db.flush()
    await db.rollback()


async def test_snapshot_cannot_be_deleted(db, confirmed_booking):
    await db.delete(confirmed_booking.financial_snapshot)
    with pytest.raises(ImmutabilityViolationError):
        await db.flush()
    await db.rollback()


@pytest.fixture
def tiered_rates(monkeypatch):
    monkeypatch.setattr(
        settings,
        "commission_tiers",
        [
            CommissionTier(min_amount=0, max_amount=100_000, rate=Decimal("0.10")),
            CommissionTier(min_amount=100_001, rate=Decimal("0.08")),
        ],
    )
    monkeypatch.setattr(
        settings, "monthly_volume_discounts", [VolumeDiscount(volume=100_000, reduction_rate=Decimal("0.01"))]
    )


@pytest.mark.parametrize(
    "confirmed_on, rate, platform_share",
    [
        # June already holds the host's 100,000 booking
        (date(2024, 6, 2), Decimal("0.07"), 10_500),
        (date(2024, 7, 1), Decimal("0.08"), 12_000),
    ],
)
async def test_tiered_rate_follows_host_volume(
    db, confirmed_booking, guest, host, tiered_rates, confirmed_on, rate, platform_share
):
    booking = await booking_service.create_booking(
        db,
        guest_id=guest.user_id,
        host_id=host.user_id,
        property_id=uuid.uuid4(),
        check_in_date=CHECK_IN,
        check_out_date=CHECK_OUT,
        room_fee=150_000,
        now=at(BOOKED_ON, 14),
    )
    confirmed = await snapshot_service.confirm_booking(db, booking.id, now=at(confirmed_on))

    snapshot = confirmed.financial_snapshot
    assert snapshot.commission_rate == rate
    assert snapshot.platform_share_amount == platform_share
    assert snapshot.host_share_amount == 150_000 - platform_share

"""Commission calculation service.

CRITICAL BUSINESS LOGIC:
- The platform keeps ``commission_rate`` of the room fee; the host gets the rest
- With commission tiers configured, the rate is picked by room fee and lowered
  by the host's monthly volume discount (capped) before it is frozen
- The platform share is rounded half up to the kobo and the host share is the
  remainder, so the two always add back to the room fee exactly
- The cleaning fee goes to the host in full
- The guest service fee is ``service_fee_rate`` of room fee + cleaning fee and
  is platform revenue
- The security deposit is held, never split
- Every amount after confirmation is computed from the booking's frozen
  snapshot, never from the live configuration below
"""

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from shortlet.config import CommissionTier, VolumeDiscount, settings
from shortlet.core.exceptions import InvalidConfigError

ZERO = Decimal("0")
ONE = Decimal("1")
MAX_TIER_RATE = Decimal("0.25")
MAX_DISCOUNT_CAP_RATE = Decimal("0.05")


@dataclass(frozen=True)
class FinanceConfig:
    """Commission and fee configuration, as read at one instant."""

    commission_rate: Decimal | None
    host_share_percent: Decimal | None
    service_fee_rate: Decimal | None
    currency: str = "NGN"
    version: str = "v1"
    commission_tiers: tuple[CommissionTier, ...] = ()
    volume_discounts: tuple[VolumeDiscount, ...] = ()
    discount_cap_rate: Decimal = Decimal("0.02")

    def with_commission_rate(self, rate: Decimal) -> "FinanceConfig":
        """Flat configuration at ``rate``, as frozen onto one booking."""
        return replace(
            self,
            commission_rate=rate,
            host_share_percent=ONE - rate,
            commission_tiers=(),
            volume_discounts=(),
        )


@dataclass(frozen=True)
class RoomFeeSplit:
    host_share_amount: int
    platform_share_amount: int


@dataclass(frozen=True)
class SnapshotAmounts:
    room_fee: int
    cleaning_fee: int
    service_fee: int
    security_deposit: int
    total_charged: int
    host_share_amount: int
    platform_share_amount: int


def get_active_finance_config() -> FinanceConfig:
    """Live finance configuration from settings."""
    return FinanceConfig(
        commission_rate=settings.commission_rate,
        host_share_percent=settings.host_share_percent,
        service_fee_rate=settings.service_fee_rate,
        currency=settings.currency,
        version=settings.finance_config_version,
        commission_tiers=tuple(settings.commission_tiers),
        volume_discounts=tuple(settings.monthly_volume_discounts),
        discount_cap_rate=settings.monthly_discount_cap_rate,
    )


def _as_rate(value: Decimal | None, name: str) -> Decimal:
    if value is None:
        raise InvalidConfigError(f"Finance configuration is missing {name}")
    try:
        rate = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidConfigError(f"Finance configuration {name} is not a number: {value!r}")
    if not rate.is_finite() or rate < ZERO or rate > ONE:
        raise InvalidConfigError(f"Finance configuration {name}={rate} is outside [0, 1]")
    return rate


def validate_finance_config(config: FinanceConfig | None) -> FinanceConfig:
    """Check every rate is present and within [0, 1].

    Raises:
        InvalidConfigError: If a rate is missing or out of range, or the
            commission and host share do not add up to 1
    """
    if config is None:
        raise InvalidConfigError("No active finance configuration")

    commission_rate = _as_rate(config.commission_rate, "commission_rate")
    host_share_percent = _as_rate(config.host_share_percent, "host_share_percent")
    service_fee_rate = _as_rate(config.service_fee_rate, "service_fee_rate")

    if commission_rate + host_share_percent != ONE:
        raise InvalidConfigError(
            f"commission_rate ({commission_rate}) and host_share_percent "
            f"({host_share_percent}) must add up to 1"
        )
    if not config.currency:
        raise InvalidConfigError("Finance configuration is missing currency")
    if config.commission_tiers:
        _validate_tiers(config)

    return replace(
        config,
        commission_rate=commission_rate,
        host_share_percent=host_share_percent,
        service_fee_rate=service_fee_rate,
    )


def _validate_tiers(config: FinanceConfig) -> None:
    tiers = sorted(config.commission_tiers, key=lambda t: t.min_amount)
    if tiers[0].min_amount != 0:
        raise InvalidConfigError("Commission tiers must start at 0")
    for previous, tier in zip(tiers, tiers[1:]):
        if previous.max_amount is None:
            raise InvalidConfigError("Only the final commission tier can be open ended")
        if tier.min_amount != previous.max_amount + 1:
            raise InvalidConfigError("Commission tiers must be contiguous and non-overlapping")
    if tiers[-1].max_amount is not None:
        raise InvalidConfigError("The final commission tier must be open ended")
    for tier in tiers:
        if tier.max_amount is not None and tier.max_amount < tier.min_amount:
            raise InvalidConfigError(f"Commission tier {tier.min_amount}..{tier.max_amount} is empty")
        if not ZERO <= tier.rate <= MAX_TIER_RATE:
            raise InvalidConfigError(f"Commission tier rate {tier.rate} is outside [0, {MAX_TIER_RATE}]")

    volumes = [d.volume for d in sorted(config.volume_discounts, key=lambda d: d.volume)]
    if any(v <= 0 for v in volumes) or len(set(volumes)) != len(volumes):
        raise InvalidConfigError("Monthly discount volumes must be positive and distinct")
    for discount in config.volume_discounts:
        if not ZERO <= discount.reduction_rate <= MAX_TIER_RATE:
            raise InvalidConfigError(
                f"Monthly discount rate {discount.reduction_rate} is outside [0, {MAX_TIER_RATE}]"
            )
    if not ZERO <= config.discount_cap_rate <= MAX_DISCOUNT_CAP_RATE:
        raise InvalidConfigError(
            f"Monthly discount cap {config.discount_cap_rate} is outside [0, {MAX_DISCOUNT_CAP_RATE}]"
        )


def _round(amount: Decimal) -> int:
    return int(amount.quantize(ONE, rounding=ROUND_HALF_UP))


class CommissionService:
    """Pure money math over integer minor units."""

    def split_room_fee(self, room_fee: int, commission_rate: Decimal) -> RoomFeeSplit:
        """Split a room fee between host and platform.

        Args:
            room_fee: Amount in kobo
            commission_rate: Platform share as a fraction (0.10 for 10%)

        Returns:
            RoomFeeSplit whose parts add up to ``room_fee``
        """
        platform_share = _round(Decimal(room_fee) * Decimal(commission_rate))
        return RoomFeeSplit(
            host_share_amount=room_fee - platform_share,
            platform_share_amount=platform_share,
        )

    def resolve_commission_rate(self, room_fee: int, monthly_volume: int, config: FinanceConfig) -> Decimal:
        """Commission rate for one booking.

        Args:
            room_fee: Booking's room fee in kobo
            monthly_volume: Host's confirmed room fees this month, in kobo
            config: Validated finance configuration

        Returns:
            The tier rate for ``room_fee`` less the host's volume discount
            (capped), or the flat rate when no tiers are configured
        """
        if not config.commission_tiers:
            return config.commission_rate

        tiers = sorted(config.commission_tiers, key=lambda t: t.min_amount)
        tier = next(
            (t for t in tiers if room_fee >= t.min_amount and (t.max_amount is None or room_fee <= t.max_amount)),
            tiers[-1],
        )
        reduction = ZERO
        for discount in sorted(config.volume_discounts, key=lambda d: d.volume):
            if monthly_volume >= discount.volume:
                reduction = discount.reduction_rate
        return max(Decimal(tier.rate) - min(reduction, config.discount_cap_rate), ZERO)

    def calculate_service_fee(self, room_fee: int, cleaning_fee: int, service_fee_rate: Decimal) -> int:
        return _round(Decimal(room_fee + cleaning_fee) * Decimal(service_fee_rate))

    def calculate_snapshot_amounts(
        self,
        room_fee: int,
        cleaning_fee: int,
        security_deposit: int,
        config: FinanceConfig,
    ) -> SnapshotAmounts:
        """Every amount the snapshot freezes.

        ``config`` must already be validated.
        """
        for name, value in (
            ("room_fee", room_fee),
            ("cleaning_fee", cleaning_fee),
            ("security_deposit", security_deposit),
        ):
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

        service_fee = self.calculate_service_fee(room_fee, cleaning_fee, config.service_fee_rate)
        split = self.split_room_fee(room_fee, config.commission_rate)
        return SnapshotAmounts(
            room_fee=room_fee,
            cleaning_fee=cleaning_fee,
            service_fee=service_fee,
            security_deposit=security_deposit,
            total_charged=room_fee + cleaning_fee + service_fee + security_deposit,
            host_share_amount=split.host_share_amount,
            platform_share_amount=split.platform_share_amount,
        )


commission_service = CommissionService()

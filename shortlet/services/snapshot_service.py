"""Finance snapshot engine.

Confirmation reads the live finance configuration exactly once and freezes
it, with every derived amount, onto the booking. A tiered configuration is
resolved to the one commission rate that applies to the booking first.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.core.clock import local_date, start_of_day, utcnow
from shortlet.core.exceptions import InvalidTransitionError, ValidationError
from shortlet.domain.booking_state import BookingStatus, StayStatus, assert_booking_transition
from shortlet.models.booking import Booking
from shortlet.models.financial import FinancialSnapshot
from shortlet.repositories.booking import BookingRepository
from shortlet.services.audit_service import audit_service
from shortlet.services.commission_service import (
    FinanceConfig,
    commission_service,
    get_active_finance_config,
    validate_finance_config,
)
from shortlet.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)


class SnapshotService:
    """Writes the immutable financial snapshot at confirmation."""

    def build_snapshot(self, booking: Booking, config: FinanceConfig, now: datetime) -> FinancialSnapshot:
        """Snapshot for ``booking`` under an already validated ``config``."""
        amounts = commission_service.calculate_snapshot_amounts(
            room_fee=booking.room_fee,
            cleaning_fee=booking.cleaning_fee,
            security_deposit=booking.security_deposit,
            config=config,
        )
        return FinancialSnapshot(
            booking_id=booking.id,
            room_fee=amounts.room_fee,
            cleaning_fee=amounts.cleaning_fee,
            service_fee=amounts.service_fee,
            security_deposit=amounts.security_deposit,
            total_charged=amounts.total_charged,
            commission_rate=config.commission_rate,
            host_share_percent=config.host_share_percent,
            service_fee_rate=config.service_fee_rate,
            host_share_amount=amounts.host_share_amount,
            platform_share_amount=amounts.platform_share_amount,
            currency=config.currency,
            config_version=config.version,
            snapshot_at=now,
        )

    async def confirm_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        config: FinanceConfig | None = None,
        now: datetime | None = None,
        confirmed_by: UUID | None = None,
    ) -> Booking:
        """Freeze the finance configuration onto a PENDING booking and confirm it.

        Args:
            db: Database session
            booking_id: Booking to confirm
            config: Finance configuration to freeze (the live one when omitted)
            now: Current instant
            confirmed_by: Acting user for the audit trail

        Returns:
            The CONFIRMED booking with its snapshot attached

        Raises:
            InvalidConfigError: If the configuration is missing or out of range
            InvalidTransitionError: If the booking is not PENDING or already
                has a snapshot
        """
        now = now or utcnow()
        bookings = BookingRepository(db)
        booking = await bookings.get_or_404(booking_id)

        if booking.is_blocked_dates:
            raise ValidationError("Blocked-dates markers cannot be confirmed")
        assert_booking_transition(BookingStatus(booking.status), BookingStatus.CONFIRMED, StayStatus.NONE)
        if booking.financial_snapshot is not None:
            raise InvalidTransitionError(f"Booking {booking.booking_number} already has a financial snapshot")

        # Read once; everything below uses this copy.
        active = validate_finance_config(config if config is not None else get_active_finance_config())
        if active.commission_tiers:
            month_start = start_of_day(local_date(now).replace(day=1))
            volume = await bookings.confirmed_room_fee_volume(booking.host_id, month_start)
            rate = commission_service.resolve_commission_rate(booking.room_fee, volume, active)
            logger.info(
                f"Booking {booking.booking_number}: commission {rate} for room fee {booking.room_fee} "
                f"at monthly volume {volume}"
            )
            active = active.with_commission_rate(rate)

        snapshot = self.build_snapshot(booking, active, now)
        booking.financial_snapshot = snapshot
        booking.currency = active.currency
        booking.status = BookingStatus.CONFIRMED
        booking.confirmed_at = now
        db.add(snapshot)
        await bookings.save(booking, now)

        await audit_service.log_financial_action(
            db=db,
            user_id=confirmed_by,
            action="snapshot_create",
            resource_type="booking",
            resource_id=booking.id,
            new_values={
                "room_fee": snapshot.room_fee,
                "total_charged": snapshot.total_charged,
                "commission_rate": str(snapshot.commission_rate),
                "host_share_amount": snapshot.host_share_amount,
                "platform_share_amount": snapshot.platform_share_amount,
                "config_version": snapshot.config_version,
            },
        )
        await audit_service.log_status_change(
            db, confirmed_by, "booking_confirm", "booking", booking.id,
            BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value,
        )
        logger.info(
            f"Booking {booking.booking_number} confirmed: room_fee={snapshot.room_fee} "
            f"host_share={snapshot.host_share_amount} platform_share={snapshot.platform_share_amount} "
            f"commission_rate={snapshot.commission_rate} config={snapshot.config_version}"
        )

        notification_service.notify_after_commit(
            db,
            NotificationService.BOOKING_CONFIRMED,
            booking.guest_id,
            {"booking_id": str(booking.id), "total_charged": snapshot.total_charged},
        )
        return booking


snapshot_service = SnapshotService()

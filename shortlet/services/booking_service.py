"""Booking lifecycle service.

Status: PENDING → CONFIRMED → ACTIVE → COMPLETED, or CANCELLED before ACTIVE.
Stay:   NONE → CHECKED_IN → CHECKED_OUT, only while ACTIVE.

Check-in is date gated in the canonical timezone: a guest may check in only
on the check-in day itself, a host on that day or any later day. A guest
still checked in after the scheduled check-out time is checked out by a
background pass.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlet.config import settings
from shortlet.core.clock import local_date, start_of_day, utcnow
from shortlet.core.exceptions import (
    AuthorizationError,
    ConcurrentUpdateError,
    InvalidTransitionError,
    TransientStorageError,
    ValidationError,
    WindowClosedError,
)
from shortlet.database import get_db_context
from shortlet.domain.actor import Actor, party_for
from shortlet.domain.booking_state import (
    ActorRole,
    BookingStatus,
    StayStatus,
    assert_booking_transition,
    assert_stay_transition,
    can_cancel,
)
from shortlet.domain.cancellation_policy import CancellationPolicy, calculate_refund_amount
from shortlet.domain.dispute_state import DisputeParty
from shortlet.domain.dispute_window import BookingWindows, WindowRules, compute_windows
from shortlet.models.booking import Booking
from shortlet.repositories.booking import BookingRepository
from shortlet.services.audit_service import audit_service
from shortlet.services.notification_service import NotificationService, notification_service
from shortlet.utils.booking_number import generate_booking_number

logger = logging.getLogger(__name__)


class BookingService:
    """Booking state transitions."""

    async def create_booking(
        self,
        db: AsyncSession,
        guest_id: UUID,
        host_id: UUID,
        property_id: UUID,
        check_in_date: date,
        check_out_date: date,
        room_fee: int,
        cleaning_fee: int = 0,
        security_deposit: int = 0,
        cancellation_policy: CancellationPolicy = CancellationPolicy.MODERATE,
        now: datetime | None = None,
    ) -> Booking:
        """Create a PENDING booking with quoted fees (kobo)."""
        now = now or utcnow()
        if check_out_date <= check_in_date:
            raise ValidationError("check_out_date must be after check_in_date")
        if check_in_date < local_date(now):
            raise ValidationError("check_in_date cannot be in the past")
        if room_fee <= 0:
            raise ValidationError("room_fee must be positive")
        if cleaning_fee < 0 or security_deposit < 0:
            raise ValidationError("Fees must not be negative")
        if guest_id == host_id:
            raise ValidationError("A host cannot book their own property")

        booking = Booking(
            booking_number=await generate_booking_number(db),
            guest_id=guest_id,
            host_id=host_id,
            property_id=property_id,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            currency=settings.currency,
            room_fee=room_fee,
            cleaning_fee=cleaning_fee,
            security_deposit=security_deposit,
            cancellation_policy=CancellationPolicy(cancellation_policy),
            status=BookingStatus.PENDING,
            stay_status=StayStatus.NONE,
            is_blocked_dates=False,
            refund_amount=0,
            financial_snapshot=None,
            disputes=[],
        )
        repo = BookingRepository(db)
        repo.add(booking)
        await repo.save(booking, now)
        logger.info(f"Booking {booking.booking_number} created for property {property_id}")
        return booking

    async def create_blocked_dates(
        self,
        db: AsyncSession,
        host_id: UUID,
        property_id: UUID,
        start_date: date,
        end_date: date,
        now: datetime | None = None,
    ) -> Booking:
        """Create a host self-block marker.

        The marker holds the calendar like a booking but has no guest stay:
        it is confirmed immediately, carries no money and is ignored by
        check-in, check-out and settlement.
        """
        now = now or utcnow()
        if end_date <= start_date:
            raise ValidationError("end_date must be after start_date")

        booking = Booking(
            booking_number=await generate_booking_number(db),
            guest_id=host_id,
            host_id=host_id,
            property_id=property_id,
            check_in_date=start_date,
            check_out_date=end_date,
            currency=settings.currency,
            room_fee=0,
            cleaning_fee=0,
            security_deposit=0,
            status=BookingStatus.CONFIRMED,
            stay_status=StayStatus.NONE,
            is_blocked_dates=True,
            refund_amount=0,
            confirmed_at=now,
            financial_snapshot=None,
            disputes=[],
        )
        repo = BookingRepository(db)
        repo.add(booking)
        await repo.save(booking, now)
        logger.info(f"Blocked dates {start_date}..{end_date} on property {property_id}")
        return booking

    async def activate_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        now: datetime | None = None,
    ) -> Booking:
        """Move a CONFIRMED booking to ACTIVE once its check-in day has arrived."""
        now = now or utcnow()
        repo = BookingRepository(db)
        booking = await repo.get_or_404(booking_id)
        self._activate(booking, now)
        await repo.save(booking, now)
        await audit_service.log_status_change(
            db, None, "booking_activate", "booking", booking.id,
            BookingStatus.CONFIRMED.value, BookingStatus.ACTIVE.value,
        )
        return booking

    def _activate(self, booking: Booking, now: datetime) -> None:
        if booking.is_blocked_dates:
            raise InvalidTransitionError("Blocked-dates markers are never activated")
        assert_booking_transition(BookingStatus(booking.status), BookingStatus.ACTIVE, StayStatus.NONE)
        today = local_date(now)
        if today < booking.check_in_date:
            raise WindowClosedError(
                f"Booking {booking.booking_number} cannot be activated before {booking.check_in_date}"
            )
        booking.status = BookingStatus.ACTIVE
        booking.activated_at = now
        logger.info(f"Booking {booking.booking_number} activated")

    async def activate_due_bookings(
        self,
        now: datetime | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> dict[str, int]:
        """Activate every CONFIRMED booking whose check-in day has arrived.

        Each booking is activated in its own transaction; a failure is logged
        and counted without stopping the batch.
        """
        now = now or utcnow()
        async with get_db_context(session_factory) as db:
            booking_ids = await BookingRepository(db).list_due_for_activation_ids(local_date(now))

        activated, errors = await self._each_booking(
            booking_ids, self.activate_booking, now, session_factory, "activate"
        )
        logger.info(f"Activation pass: due={len(booking_ids)} activated={activated} errors={errors}")
        return {"due": len(booking_ids), "activated": activated, "errors": errors}

    async def _each_booking(
        self,
        booking_ids: list[UUID],
        action: Callable[[AsyncSession, UUID, datetime], Awaitable[Booking]],
        now: datetime,
        session_factory: async_sessionmaker[AsyncSession] | None,
        label: str,
    ) -> tuple[int, int]:
        done = 0
        errors = 0
        for booking_id in booking_ids:
            try:
                async with get_db_context(session_factory) as db:
                    await action(db, booking_id, now)
                done += 1
            except (
                InvalidTransitionError,
                WindowClosedError,
                TransientStorageError,
                ConcurrentUpdateError,
            ) as e:
                errors += 1
                logger.warning(f"Could not {label} booking {booking_id}: {e}")
        return done, errors

    def last_due_check_out_day(self, now: datetime) -> date:
        """Latest check-out day whose scheduled check-out time has passed."""
        today = local_date(now)
        if now >= start_of_day(today) + timedelta(hours=settings.check_out_hour):
            return today
        return today - timedelta(days=1)

    async def auto_check_out(
        self,
        db: AsyncSession,
        booking_id: UUID,
        now: datetime | None = None,
    ) -> Booking:
        """Close the stay of a guest still checked in after the scheduled check-out.

        The stay ends on the scheduled check-out day (the check-in day when
        the host checked in later than that), which anchors the host dispute
        window.

        Raises:
            InvalidTransitionError: If the booking is not ACTIVE and checked in
            WindowClosedError: If the scheduled check-out time has not passed
        """
        now = now or utcnow()
        repo = BookingRepository(db)
        booking = await repo.get_or_404(booking_id)
        if booking.is_blocked_dates:
            raise InvalidTransitionError("Blocked-dates markers have no stay to check out of")
        if booking.check_out_date > self.last_due_check_out_day(now):
            raise WindowClosedError(
                f"Booking {booking.booking_number} is not due to check out before {booking.check_out_date}"
            )

        assert_stay_transition(
            BookingStatus(booking.status), StayStatus(booking.stay_status), StayStatus.CHECKED_OUT
        )
        checked_out_on = max(booking.check_out_date, booking.checked_in_on)
        booking.stay_status = StayStatus.CHECKED_OUT
        booking.checked_out_on = checked_out_on
        booking.checked_out_at = now
        booking.auto_checked_out = True
        await repo.save(booking, now)

        await audit_service.log_status_change(
            db, None, "booking_auto_check_out", "booking", booking.id,
            StayStatus.CHECKED_IN.value, StayStatus.CHECKED_OUT.value,
            checked_out_on=checked_out_on.isoformat(),
        )
        logger.info(f"Booking {booking.booking_number} checked out automatically on {checked_out_on}")
        for recipient in (booking.guest_id, booking.host_id):
            notification_service.notify_after_commit(
                db,
                NotificationService.BOOKING_CHECKED_OUT,
                recipient,
                {"booking_id": str(booking.id), "checked_out_on": checked_out_on.isoformat(), "auto": True},
            )
        return booking

    async def auto_check_out_due_bookings(
        self,
        now: datetime | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> dict[str, int]:
        """Check out every checked-in booking past its scheduled check-out time.

        Each booking is checked out in its own transaction; a failure is
        logged and counted without stopping the batch.
        """
        now = now or utcnow()
        async with get_db_context(session_factory) as db:
            booking_ids = await BookingRepository(db).list_due_for_check_out_ids(
                self.last_due_check_out_day(now)
            )

        checked_out, errors = await self._each_booking(
            booking_ids, self.auto_check_out, now, session_factory, "check out"
        )
        logger.info(f"Check-out pass: due={len(booking_ids)} checked_out={checked_out} errors={errors}")
        return {"due": len(booking_ids), "checked_out": checked_out, "errors": errors}

    async def check_in(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Actor,
        now: datetime | None = None,
    ) -> Booking:
        """Record check-in.

        Args:
            db: Database session
            booking_id: Booking to check in
            actor: Booking's guest or host
            now: Current instant

        Returns:
            The booking with stay_status CHECKED_IN

        Raises:
            AuthorizationError: If the actor is not a party to the booking
            InvalidTransitionError: If the booking is not in a state that allows check-in
            WindowClosedError: If today is outside the actor's check-in window
        """
        now = now or utcnow()
        repo = BookingRepository(db)
        booking = await repo.get_or_404(booking_id)
        if booking.is_blocked_dates:
            raise InvalidTransitionError("Blocked-dates markers have no stay to check in to")

        party = party_for(actor, booking)
        today = local_date(now)

        if party == DisputeParty.GUEST and today != booking.check_in_date:
            raise WindowClosedError(
                f"Guests can only check in on {booking.check_in_date} (today is {today})"
            )
        if party == DisputeParty.HOST and today < booking.check_in_date:
            raise WindowClosedError(
                f"Check-in opens on {booking.check_in_date} (today is {today})"
            )

        # The check-in day has arrived, so a booking the activation job has
        # not reached yet is activated here.
        if booking.status == BookingStatus.CONFIRMED:
            self._activate(booking, now)

        assert_stay_transition(
            BookingStatus(booking.status), StayStatus(booking.stay_status), StayStatus.CHECKED_IN
        )
        booking.stay_status = StayStatus.CHECKED_IN
        booking.checked_in_on = today
        booking.checked_in_at = now
        booking.check_in_confirmed_by = party
        await repo.save(booking, now)

        await audit_service.log_status_change(
            db, actor.user_id, "booking_check_in", "booking", booking.id,
            StayStatus.NONE.value, StayStatus.CHECKED_IN.value,
            confirmed_by=party.value, checked_in_on=today.isoformat(),
        )
        logger.info(f"Booking {booking.booking_number} checked in by {party.value} on {today}")
        notification_service.notify_after_commit(
            db,
            NotificationService.BOOKING_CHECKED_IN,
            booking.host_id if party == DisputeParty.GUEST else booking.guest_id,
            {"booking_id": str(booking.id), "checked_in_on": today.isoformat()},
        )
        return booking

    async def check_out(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Actor,
        now: datetime | None = None,
    ) -> Booking:
        """Record check-out (guest only)."""
        now = now or utcnow()
        repo = BookingRepository(db)
        booking = await repo.get_or_404(booking_id)
        if booking.is_blocked_dates:
            raise InvalidTransitionError("Blocked-dates markers have no stay to check out of")
        if party_for(actor, booking) != DisputeParty.GUEST:
            raise AuthorizationError("Only the guest can check out")

        assert_stay_transition(
            BookingStatus(booking.status), StayStatus(booking.stay_status), StayStatus.CHECKED_OUT
        )
        today = local_date(now)
        booking.stay_status = StayStatus.CHECKED_OUT
        booking.checked_out_on = today
        booking.checked_out_at = now
        await repo.save(booking, now)

        await audit_service.log_status_change(
            db, actor.user_id, "booking_check_out", "booking", booking.id,
            StayStatus.CHECKED_IN.value, StayStatus.CHECKED_OUT.value,
            checked_out_on=today.isoformat(),
        )
        logger.info(f"Booking {booking.booking_number} checked out on {today}")
        notification_service.notify_after_commit(
            db,
            NotificationService.BOOKING_CHECKED_OUT,
            booking.host_id,
            {"booking_id": str(booking.id), "checked_out_on": today.isoformat()},
        )
        return booking

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Actor,
        now: datetime | None = None,
        reason: str | None = None,
    ) -> Booking:
        """Cancel a PENDING or CONFIRMED booking.

        Host cancellation refunds everything. Guest and admin cancellations
        follow the booking's cancellation policy. The refund base is the
        snapshot's total_charged, or the quoted total before confirmation.
        """
        now = now or utcnow()
        repo = BookingRepository(db)
        booking = await repo.get_or_404(booking_id)

        if actor.is_admin:
            cancelled_by = ActorRole.ADMIN
        else:
            party = party_for(actor, booking)
            cancelled_by = ActorRole.GUEST if party == DisputeParty.GUEST else ActorRole.HOST

        allowed, error = can_cancel(BookingStatus(booking.status))
        if not allowed:
            raise InvalidTransitionError(error)
        old_status = BookingStatus(booking.status)
        assert_booking_transition(old_status, BookingStatus.CANCELLED, StayStatus.NONE)

        snapshot = booking.financial_snapshot
        base = snapshot.total_charged if snapshot is not None else booking.quoted_total
        if booking.is_blocked_dates:
            refund = 0
        elif cancelled_by == ActorRole.HOST:
            refund = base
        else:
            refund = calculate_refund_amount(
                policy=booking.cancellation_policy,
                check_in_date=booking.check_in_date,
                cancellation_date=local_date(now),
                total_charged=base,
            )

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_by = cancelled_by
        booking.cancellation_reason = reason
        booking.cancelled_at = now
        booking.refund_amount = refund
        await repo.save(booking, now)

        await audit_service.log_status_change(
            db, actor.user_id, "booking_cancel", "booking", booking.id,
            old_status.value, BookingStatus.CANCELLED.value,
            cancelled_by=cancelled_by.value, refund_amount=refund,
        )
        logger.info(
            f"Booking {booking.booking_number} cancelled by {cancelled_by.value}: "
            f"refund={refund} of {base}"
        )
        notification_service.notify_after_commit(
            db,
            NotificationService.BOOKING_CANCELLED,
            booking.guest_id,
            {"booking_id": str(booking.id), "refund_amount": refund},
        )
        return booking

    async def get_windows(
        self,
        db: AsyncSession,
        booking_id: UUID,
        now: datetime | None = None,
        rules: WindowRules | None = None,
    ) -> tuple[Booking, BookingWindows]:
        booking = await BookingRepository(db).get_or_404(booking_id)
        return booking, compute_windows(booking, now or utcnow(), rules, booking.disputes)


booking_service = BookingService()

"""Escrow settlement service.

One settlement pass scans every ACTIVE, checked-in or checked-out booking
and, per booking:

1. creates each release event whose trigger day has arrived and whose guest
   dispute window no longer holds the funds (expired unused, or consumed by
   a dispute that has since been resolved);
2. once the guest has checked out and the host window no longer holds the
   security deposit, pays any approved host claim out of it as a
   RELEASE_DEPOSIT_CLAIM event and records the rest as returned to the guest;
3. completes the booking once every required fee event is RELEASED, the
   deposit is settled and no dispute is OPEN.

Release events are created with a conflict-free insert keyed by
(booking_id, event_type), and every booking is settled in its own
transaction that also bumps the booking's version. Running a pass any
number of times converges on the same set of events.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlet.config import settings
from shortlet.core.clock import start_of_day, utcnow
from shortlet.core.exceptions import AppException, DuplicateReleaseError, InvalidTransitionError
from shortlet.core.retry import with_retry
from shortlet.database import get_db_context
from shortlet.domain.booking_state import BookingStatus, StayStatus, assert_booking_transition
from shortlet.domain.dispute_state import DisputeParty
from shortlet.domain.dispute_window import DisputeWindow, WindowRules, compute_windows
from shortlet.domain.release_state import ReleaseEventType, ReleaseStatus, required_event_types
from shortlet.models.booking import Booking
from shortlet.models.financial import FinancialSnapshot
from shortlet.repositories.booking import BookingRepository
from shortlet.repositories.dispute import DisputeRepository
from shortlet.repositories.release_event import ReleaseEventRepository
from shortlet.services.audit_service import audit_service
from shortlet.services.commission_service import commission_service
from shortlet.services.dispute_service import dispute_service
from shortlet.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)

RELEASE_DELAY_SETTINGS = {
    ReleaseEventType.RELEASE_ROOM_FEE: "room_fee_release_delay_days",
    ReleaseEventType.RELEASE_CLEANING_FEE: "cleaning_fee_release_delay_days",
}


@dataclass
class SettlementResult:
    """Counters for one settlement pass."""

    processed: int = 0
    released: int = 0
    errors: int = 0
    completed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "released": self.released,
            "errors": self.errors,
            "completed": self.completed,
        }


@dataclass
class BookingSettlement:
    """What settling one booking did."""

    booking_id: UUID
    host_id: UUID | None = None
    guest_id: UUID | None = None
    released: list[tuple[ReleaseEventType, int]] = field(default_factory=list)
    # Deposit returned to the guest, set when the deposit was settled
    deposit_refund: int | None = None
    completed: bool = False


def is_settlement_candidate(booking: Booking) -> bool:
    return (
        not booking.is_blocked_dates
        and booking.status == BookingStatus.ACTIVE
        and booking.stay_status in (StayStatus.CHECKED_IN, StayStatus.CHECKED_OUT)
    )


class SettlementService:
    """Releases escrowed funds and completes bookings."""

    def release_trigger(self, booking: Booking, event_type: ReleaseEventType) -> datetime | None:
        """First instant at which ``event_type`` may be released.

        Start of the canonical day that lies the configured delay after the
        actual check-in day; None before check-in.
        """
        if booking.checked_in_on is None:
            return None
        delay = getattr(settings, RELEASE_DELAY_SETTINGS[event_type])
        return start_of_day(booking.checked_in_on + timedelta(days=delay))

    def release_amount(
        self,
        snapshot: FinancialSnapshot,
        event_type: ReleaseEventType,
        guest_refund: int = 0,
    ) -> int:
        """Host's share of one fee component under the frozen rates.

        A refund granted to the guest comes off the room fee before the split.
        """
        if event_type == ReleaseEventType.RELEASE_CLEANING_FEE:
            return snapshot.cleaning_fee
        remaining = max(snapshot.room_fee - guest_refund, 0)
        return commission_service.split_room_fee(remaining, snapshot.commission_rate).host_share_amount

    async def settle_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        now: datetime,
        rules: WindowRules | None = None,
    ) -> BookingSettlement:
        """Release what is due for one booking and complete it when possible.

        Args:
            db: Database session (one transaction per booking)
            booking_id: Booking to settle
            now: Current instant (timezone aware)
            rules: Window rules (configured ones when omitted)

        Returns:
            BookingSettlement describing released events, the deposit outcome
            and completion

        Raises:
            InvalidTransitionError: If the booking has no financial snapshot
            ConcurrentUpdateError: If the booking changed while being settled
        """
        bookings = BookingRepository(db)
        releases = ReleaseEventRepository(db)
        booking = await bookings.get_or_404(booking_id)
        outcome = BookingSettlement(booking_id=booking.id, host_id=booking.host_id, guest_id=booking.guest_id)

        if not is_settlement_candidate(booking):
            logger.debug(f"Booking {booking.booking_number} is no longer eligible for settlement")
            return outcome

        snapshot = booking.financial_snapshot
        if snapshot is None:
            raise InvalidTransitionError(
                f"Booking {booking.booking_number} is ACTIVE without a financial snapshot"
            )

        windows = compute_windows(booking, now, rules, booking.disputes)
        guest_refund = dispute_service.approved_guest_refund(booking)
        required = required_event_types(snapshot.cleaning_fee)

        existing = {
            ReleaseEventType(e.event_type)
            for e in await releases.list_for_booking(booking.id)
            if e.status == ReleaseStatus.RELEASED
        }

        for event_type in required:
            if event_type in existing:
                continue
            trigger = self.release_trigger(booking, event_type)
            if trigger is None or now < trigger:
                continue
            # Both fee components are held by the guest window.
            if not windows.guest.allows_release:
                continue

            amount = self.release_amount(snapshot, event_type, guest_refund)
            await self._release(
                db, releases, booking, snapshot, event_type, amount, trigger, now, outcome,
                guest_refund=guest_refund, commission_rate=str(snapshot.commission_rate),
            )
            existing.add(event_type)

        # The deposit is held by the host window.
        if (
            booking.stay_status == StayStatus.CHECKED_OUT
            and booking.deposit_settled_at is None
            and windows.host.allows_release
        ):
            await self._settle_deposit(db, releases, booking, snapshot, windows.host, now, outcome)

        if (
            booking.stay_status == StayStatus.CHECKED_OUT
            and all(t in existing for t in required)
            and booking.deposit_settled_at is not None
            and not windows.host.is_open
            and not await DisputeRepository(db).has_open_dispute(booking.id)
        ):
            assert_booking_transition(BookingStatus.ACTIVE, BookingStatus.COMPLETED, StayStatus.CHECKED_OUT)
            booking.status = BookingStatus.COMPLETED
            booking.completed_at = now
            outcome.completed = True
            await audit_service.log_status_change(
                db, None, "booking_complete", "booking", booking.id,
                BookingStatus.ACTIVE.value, BookingStatus.COMPLETED.value,
            )
            logger.info(f"Booking {booking.booking_number} completed")

        if outcome.released or outcome.deposit_refund is not None or outcome.completed:
            await bookings.save(booking, now)
        return outcome

    async def _release(
        self,
        db: AsyncSession,
        releases: ReleaseEventRepository,
        booking: Booking,
        snapshot: FinancialSnapshot,
        event_type: ReleaseEventType,
        amount: int,
        release_date: datetime,
        now: datetime,
        outcome: BookingSettlement,
        **details,
    ) -> None:
        try:
            created = await releases.create_released_once(
                booking_id=booking.id,
                host_id=booking.host_id,
                event_type=event_type,
                amount=amount,
                currency=snapshot.currency,
                release_date=release_date,
                released_at=now,
            )
        except DuplicateReleaseError as e:
            logger.info(f"{e}; treating as already released")
            created = False

        if not created:
            logger.info(f"{event_type.value} for booking {booking.booking_number} already released")
            return

        outcome.released.append((event_type, amount))
        await audit_service.log_financial_action(
            db=db,
            user_id=None,
            action="release_create",
            resource_type="booking",
            resource_id=booking.id,
            new_values={"event_type": event_type.value, "amount": amount, **details},
        )
        logger.info(
            f"Released {event_type.value} for booking {booking.booking_number}: "
            f"amount={amount} {snapshot.currency}"
        )

    async def _settle_deposit(
        self,
        db: AsyncSession,
        releases: ReleaseEventRepository,
        booking: Booking,
        snapshot: FinancialSnapshot,
        host_window: DisputeWindow,
        now: datetime,
        outcome: BookingSettlement,
    ) -> None:
        """Pay an approved host claim out of the deposit and return the rest to the guest."""
        claim = dispute_service.resolved_dispute(booking, DisputeParty.HOST)
        approved = (claim.approved_amount or 0) if claim else 0

        if approved > 0:
            await self._release(
                db, releases, booking, snapshot, ReleaseEventType.RELEASE_DEPOSIT_CLAIM,
                approved, claim.resolved_at or now, now, outcome,
                dispute_id=str(claim.id), security_deposit=snapshot.security_deposit,
            )

        refund = snapshot.security_deposit - approved
        booking.deposit_refund_amount = refund
        booking.deposit_settled_at = now
        outcome.deposit_refund = refund
        await audit_service.log_financial_action(
            db=db,
            user_id=None,
            action="deposit_settle",
            resource_type="booking",
            resource_id=booking.id,
            new_values={
                "security_deposit": snapshot.security_deposit,
                "host_claim": approved,
                "guest_refund": refund,
                "host_window": host_window.state.value,
            },
        )
        logger.info(
            f"Deposit settled for booking {booking.booking_number}: "
            f"claim={approved} returned={refund} {snapshot.currency}"
        )

    async def run_settlement_pass(
        self,
        now: datetime | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        rules: WindowRules | None = None,
    ) -> SettlementResult:
        """Run one settlement pass over every eligible booking.

        Per-booking failures are retried when transient, then logged and
        counted in ``errors``; they never stop the pass. A failure to list
        the eligible bookings propagates.

        Args:
            now: Current instant (defaults to the wall clock)
            session_factory: Session factory (the application's when omitted)
            rules: Window rules (configured ones when omitted)

        Returns:
            SettlementResult with processed, released, completed and error counts
        """
        now = now or utcnow()
        result = SettlementResult()

        async def list_candidates() -> list[UUID]:
            async with get_db_context(session_factory) as db:
                return await BookingRepository(db).list_settlement_candidate_ids()

        booking_ids = await with_retry(list_candidates, "list settlement candidates")
        logger.info(f"Settlement pass started at {now.isoformat()}: {len(booking_ids)} candidate(s)")

        for booking_id in booking_ids:
            result.processed += 1

            async def settle_once(booking_id: UUID = booking_id) -> BookingSettlement:
                async with get_db_context(session_factory) as db:
                    return await self.settle_booking(db, booking_id, now, rules)

            try:
                outcome = await with_retry(settle_once, f"settle booking {booking_id}")
            except (AppException, SQLAlchemyError) as e:
                result.errors += 1
                logger.error(f"Settlement failed for booking {booking_id}: {e}")
                continue

            result.released += len(outcome.released)
            if outcome.completed:
                result.completed += 1
            await self._notify(outcome)

        logger.info(
            f"Settlement pass finished: processed={result.processed} released={result.released} "
            f"completed={result.completed} errors={result.errors}"
        )
        return result

    async def _notify(self, outcome: BookingSettlement) -> None:
        for event_type, amount in outcome.released:
            await notification_service.notify(
                NotificationService.FUNDS_RELEASED,
                outcome.host_id,
                {"booking_id": str(outcome.booking_id), "event_type": event_type.value, "amount": amount},
            )
        if outcome.deposit_refund:
            await notification_service.notify(
                NotificationService.DEPOSIT_RETURNED,
                outcome.guest_id,
                {"booking_id": str(outcome.booking_id), "amount": outcome.deposit_refund},
            )
        if outcome.completed:
            await notification_service.notify(
                NotificationService.BOOKING_COMPLETED,
                outcome.host_id,
                {"booking_id": str(outcome.booking_id)},
            )


settlement_service = SettlementService()

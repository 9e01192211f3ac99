"""Dispute filing and resolution service.

Filing consumes the party's dispute window for good and holds back the
funds that window gates until the dispute is resolved. Adjudication itself
happens elsewhere; :meth:`DisputeService.resolve_dispute` is the hook it
calls, and it only enforces the category ceilings.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.config import settings
from shortlet.core.clock import utcnow
from shortlet.core.exceptions import (
    EvidenceRequiredError,
    InvalidTransitionError,
    ValidationError,
    WindowClosedError,
)
from shortlet.domain.actor import Actor, party_for
from shortlet.domain.dispute_state import (
    CATEGORIES_BY_PARTY,
    DisputeCategory,
    DisputeOutcome,
    DisputeParty,
    DisputeStatus,
    assert_dispute_transition,
    can_resolve_dispute,
    category_party,
    compute_ceiling,
)
from shortlet.domain.dispute_window import WindowRules, WindowState, compute_windows
from shortlet.models.booking import Booking
from shortlet.models.dispute import Dispute
from shortlet.repositories.booking import BookingRepository
from shortlet.repositories.dispute import DisputeRepository
from shortlet.services.audit_service import audit_service
from shortlet.services.notification_service import NotificationService, notification_service
from shortlet.utils.validators import clean_evidence_urls

logger = logging.getLogger(__name__)


class DisputeService:
    """Service for the guest and host dispute lifecycle."""

    def ceiling_for(self, booking: Booking, category: DisputeCategory) -> int:
        """Maximum refund or claim for ``category`` under the booking's frozen amounts."""
        snapshot = booking.financial_snapshot
        if snapshot is None:
            raise InvalidTransitionError(f"Booking {booking.booking_number} has no financial snapshot")
        return compute_ceiling(category, snapshot.room_fee, snapshot.security_deposit)

    async def open_dispute(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Actor,
        category: DisputeCategory | str,
        writeup: str,
        evidence_urls: list[str] | None,
        claimed_amount: int | None = None,
        now: datetime | None = None,
        rules: WindowRules | None = None,
    ) -> Dispute:
        """File a dispute in the actor's window.

        Args:
            db: Database session
            booking_id: Disputed booking
            actor: Booking's guest or host
            category: Category from the actor's side of the taxonomy
            writeup: Written justification
            evidence_urls: References returned by the media store
            claimed_amount: Deposit claim in kobo (host disputes only)
            now: Current instant
            rules: Window rules (configured ones when omitted)

        Returns:
            The OPEN dispute

        Raises:
            AuthorizationError: If the actor is not a party to the booking
            WindowClosedError: If the actor's window is not OPEN
            ValidationError: If the writeup is too short, evidence references
                are malformed, the category belongs to the other party or the
                claimed amount is out of range
            EvidenceRequiredError: If no usable evidence reference remains
        """
        now = now or utcnow()
        bookings = BookingRepository(db)
        booking = await bookings.get_or_404(booking_id)
        party = party_for(actor, booking)

        if booking.is_blocked_dates:
            raise WindowClosedError("Blocked-dates markers cannot be disputed")

        # 1. window
        window = compute_windows(booking, now, rules, booking.disputes).for_party(party)
        if window.state != WindowState.OPEN:
            raise WindowClosedError(f"The {party.value.lower()} dispute window is {window.state.value}")

        # 2. writeup
        writeup = (writeup or "").strip()
        if len(writeup) < settings.dispute_writeup_min_length:
            raise ValidationError(
                f"Writeup must be at least {settings.dispute_writeup_min_length} characters"
            )

        # 3. evidence
        evidence, malformed = clean_evidence_urls(evidence_urls)
        if malformed:
            raise ValidationError(f"Invalid evidence references: {', '.join(malformed)}")
        if not evidence:
            raise EvidenceRequiredError()

        try:
            category = DisputeCategory(category)
        except ValueError:
            raise ValidationError(f"Unknown dispute category: {category}")
        if category not in CATEGORIES_BY_PARTY[party]:
            raise ValidationError(f"{category.value} is not a {party.value.lower()} dispute category")

        # 4. host claim
        if party == DisputeParty.HOST:
            deposit = booking.financial_snapshot.security_deposit
            if claimed_amount is None or claimed_amount <= 0:
                raise ValidationError("claimed_amount must be a positive amount")
            if claimed_amount > deposit:
                raise ValidationError(
                    f"claimed_amount {claimed_amount} exceeds the security deposit {deposit}"
                )
        else:
            claimed_amount = None

        dispute = Dispute(
            booking=booking,
            opened_by=party,
            opened_by_user_id=actor.user_id,
            category=category,
            claimed_amount=claimed_amount,
            writeup=writeup,
            evidence_urls=evidence,
            status=DisputeStatus.OPEN,
            approved_amount=0,
            created_at=now,
        )
        db.add(dispute)
        try:
            # The version bump makes a concurrent settlement of this booking conflict.
            await bookings.save(booking, now)
        except IntegrityError as exc:
            raise WindowClosedError(
                f"A {party.value.lower()} dispute was already filed for this booking"
            ) from exc

        await audit_service.log_status_change(
            db, actor.user_id, "dispute_open", "dispute", dispute.id,
            None, DisputeStatus.OPEN.value,
            booking_id=str(booking.id), category=category.value, claimed_amount=claimed_amount,
        )
        logger.info(
            f"Dispute {dispute.id} opened by {party.value} on booking {booking.booking_number}: "
            f"{category.value} claimed={claimed_amount}"
        )
        notification_service.notify_after_commit(
            db,
            NotificationService.DISPUTE_OPENED,
            booking.host_id if party == DisputeParty.GUEST else booking.guest_id,
            {"booking_id": str(booking.id), "dispute_id": str(dispute.id), "category": category.value},
        )
        return dispute

    async def resolve_dispute(
        self,
        db: AsyncSession,
        dispute_id: UUID,
        outcome: DisputeOutcome | str,
        approved_amount: int | None,
        resolved_by: UUID,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> Dispute:
        """Record an adjudication outcome.

        ACCEPTED defaults the approved amount to the cap when none is given.
        The cap is the category ceiling, and for host claims also the
        claimed amount. REJECTED always approves nothing.

        Raises:
            InvalidTransitionError: If the dispute is not OPEN
            ValidationError: If the approved amount is above the cap, or not
                positive for an ACCEPTED or PARTIAL outcome
        """
        now = now or utcnow()
        dispute = await DisputeRepository(db).get_or_404(dispute_id)
        can_resolve, error = can_resolve_dispute(DisputeStatus(dispute.status))
        if not can_resolve:
            raise InvalidTransitionError(error)
        assert_dispute_transition(DisputeStatus(dispute.status), DisputeStatus.RESOLVED)

        try:
            outcome = DisputeOutcome(outcome)
        except ValueError:
            raise ValidationError(f"Unknown dispute outcome: {outcome}")

        bookings = BookingRepository(db)
        booking = await bookings.get_or_404(dispute.booking_id)
        category = DisputeCategory(dispute.category)
        cap = self.ceiling_for(booking, category)
        if category_party(category) == DisputeParty.HOST and dispute.claimed_amount is not None:
            cap = min(cap, dispute.claimed_amount)

        if outcome == DisputeOutcome.REJECTED:
            approved = 0
        else:
            approved = cap if approved_amount is None and outcome == DisputeOutcome.ACCEPTED else approved_amount
            if approved is None or approved <= 0:
                raise ValidationError(f"{outcome.value} resolutions need a positive approved_amount")
            if approved > cap:
                raise ValidationError(
                    f"approved_amount {approved} exceeds the {category.value} ceiling {cap}"
                )

        dispute.status = DisputeStatus.RESOLVED
        dispute.outcome = outcome
        dispute.approved_amount = approved
        dispute.resolution_notes = notes
        dispute.resolved_by = resolved_by
        dispute.resolved_at = now
        await bookings.save(booking, now)

        await audit_service.log_status_change(
            db, resolved_by, "dispute_resolve", "dispute", dispute.id,
            DisputeStatus.OPEN.value, DisputeStatus.RESOLVED.value,
            outcome=outcome.value, approved_amount=approved,
        )
        logger.info(
            f"Dispute {dispute.id} resolved: {outcome.value} approved={approved} (cap {cap})"
        )
        notification_service.notify_after_commit(
            db,
            NotificationService.DISPUTE_RESOLVED,
            booking.guest_id if dispute.opened_by == DisputeParty.GUEST else booking.host_id,
            {"dispute_id": str(dispute.id), "outcome": outcome.value, "approved_amount": approved},
        )
        return dispute

    def resolved_dispute(self, booking: Booking, party: DisputeParty) -> Dispute | None:
        for dispute in booking.disputes:
            if dispute.opened_by == party and dispute.status == DisputeStatus.RESOLVED:
                return dispute
        return None

    def approved_guest_refund(self, booking: Booking) -> int:
        """Room-fee refund granted by a resolved guest dispute, 0 if none."""
        dispute = self.resolved_dispute(booking, DisputeParty.GUEST)
        return (dispute.approved_amount or 0) if dispute else 0


dispute_service = DisputeService()

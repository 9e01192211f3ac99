"""Tests for dispute filing and resolution."""

import uuid
from datetime import date

import pytest

from shortlet.core.exceptions import (
    AuthorizationError,
    EvidenceRequiredError,
    InvalidTransitionError,
    ValidationError,
    WindowClosedError,
)
from shortlet.domain.actor import Actor
from shortlet.domain.booking_state import ActorRole
from shortlet.domain.dispute_state import (
    DisputeCategory,
    DisputeOutcome,
    DisputeParty,
    DisputeStatus,
)
from shortlet.services.dispute_service import dispute_service

from helpers import CHECK_IN, EVIDENCE, WRITEUP, at

GUEST_DAY = date(2024, 6, 11)
HOST_DAY = date(2024, 6, 14)


async def open_guest_dispute(db, booking, guest, category=DisputeCategory.MINOR_INCONVENIENCE, **kwargs):
    params = {"writeup": WRITEUP, "evidence_urls": EVIDENCE, "now": at(GUEST_DAY)}
    params.update(kwargs)
    return await dispute_service.open_dispute(db, booking.id, guest, category, **params)


async def test_guest_opens_dispute(db, checked_in_booking, guest):
    dispute = await open_guest_dispute(db, checked_in_booking, guest)
    assert dispute.status == DisputeStatus.OPEN
    assert dispute.opened_by == DisputeParty.GUEST
    assert dispute.claimed_amount is None
    assert dispute.evidence_urls == EVIDENCE


async def test_guest_window_not_open_before_check_in(db, confirmed_booking, guest):
    with pytest.raises(WindowClosedError):
        await open_guest_dispute(db, confirmed_booking, guest, now=at(CHECK_IN))


async def test_guest_window_expired(db, checked_in_booking, guest):
    with pytest.raises(WindowClosedError):
        await open_guest_dispute(db, checked_in_booking, guest, now=at(date(2024, 6, 13)))


async def test_second_guest_dispute_rejected(db, checked_in_booking, guest):
    await open_guest_dispute(db, checked_in_booking, guest)
    await db.commit()
    with pytest.raises(WindowClosedError):
        await open_guest_dispute(db, checked_in_booking, guest, DisputeCategory.SAFETY_UNINHABITABLE)


async def test_evidence_required(db, checked_in_booking, guest):
    with pytest.raises(EvidenceRequiredError):
        await open_guest_dispute(db, checked_in_booking, guest, evidence_urls=[])
    with pytest.raises(EvidenceRequiredError):
        await open_guest_dispute(db, checked_in_booking, guest, evidence_urls=["  "])


async def test_malformed_evidence_rejected(db, checked_in_booking, guest):
    with pytest.raises(ValidationError):
        await open_guest_dispute(db, checked_in_booking, guest, evidence_urls=["not-a-url"])


async def test_short_writeup_rejected(db, checked_in_booking, guest):
    with pytest.raises(ValidationError):
        await open_guest_dispute(db, checked_in_booking, guest, writeup="Bad.")


async def test_guest_cannot_use_host_category(db, checked_in_booking, guest):
    with pytest.raises(ValidationError):
        await open_guest_dispute(db, checked_in_booking, guest, DisputeCategory.PROPERTY_DAMAGE)


async def test_stranger_cannot_dispute(db, checked_in_booking):
    stranger = Actor(user_id=uuid.uuid4(), role=ActorRole.GUEST)
    with pytest.raises(AuthorizationError):
        await open_guest_dispute(db, checked_in_booking, stranger)


async def test_host_claim_within_deposit(db, checked_out_booking, host):
    dispute = await dispute_service.open_dispute(
        db,
        checked_out_booking.id,
        host,
        DisputeCategory.PROPERTY_DAMAGE,
        writeup="Broken glass table in the living room.",
        evidence_urls=EVIDENCE,
        claimed_amount=20_000,
        now=at(HOST_DAY),
    )
    assert dispute.opened_by == DisputeParty.HOST
    assert dispute.claimed_amount == 20_000


@pytest.mark.parametrize("claimed", [60_000, 0, None])
async def test_host_claim_out_of_range(db, checked_out_booking, host, claimed):
    with pytest.raises(ValidationError):
        await dispute_service.open_dispute(
            db,
            checked_out_booking.id,
            host,
            DisputeCategory.PROPERTY_DAMAGE,
            writeup="Broken glass table in the living room.",
            evidence_urls=EVIDENCE,
            claimed_amount=claimed,
            now=at(HOST_DAY),
        )


async def test_host_window_not_open_before_check_out(db, checked_in_booking, host):
    with pytest.raises(WindowClosedError):
        await dispute_service.open_dispute(
            db,
            checked_in_booking.id,
            host,
            DisputeCategory.MISSING_ITEMS,
            writeup="Two towels and a kettle are missing.",
            evidence_urls=EVIDENCE,
            claimed_amount=5_000,
            now=at(GUEST_DAY),
        )


async def test_resolve_partial_within_ceiling(db, checked_in_booking, guest, admin):
    dispute = await open_guest_dispute(db, checked_in_booking, guest)
    resolved = await dispute_service.resolve_dispute(
        db, dispute.id, DisputeOutcome.PARTIAL, 20_000, admin.user_id, notes="AC outage confirmed"
    )
    assert resolved.status == DisputeStatus.RESOLVED
    assert resolved.approved_amount == 20_000
    assert dispute_service.approved_guest_refund(checked_in_booking) == 20_000


async def test_resolve_above_ceiling_rejected(db, checked_in_booking, guest, admin):
    # minor inconvenience is capped at 30% of the room fee
    dispute = await open_guest_dispute(db, checked_in_booking, guest)
    with pytest.raises(ValidationError):
        await dispute_service.resolve_dispute(db, dispute.id, DisputeOutcome.PARTIAL, 40_000, admin.user_id)


async def test_accepted_defaults_to_ceiling(db, checked_in_booking, guest, admin):
    dispute = await open_guest_dispute(db, checked_in_booking, guest)
    resolved = await dispute_service.resolve_dispute(db, dispute.id, DisputeOutcome.ACCEPTED, None, admin.user_id)
    assert resolved.approved_amount == 30_000


async def test_rejected_approves_nothing(db, checked_in_booking, guest, admin):
    dispute = await open_guest_dispute(db, checked_in_booking, guest, DisputeCategory.SAFETY_UNINHABITABLE)
    resolved = await dispute_service.resolve_dispute(db, dispute.id, "REJECTED", 10_000, admin.user_id)
    assert resolved.outcome == DisputeOutcome.REJECTED
    assert resolved.approved_amount == 0


async def test_host_resolution_capped_by_claim(db, checked_out_booking, host, admin):
    dispute = await dispute_service.open_dispute(
        db,
        checked_out_booking.id,
        host,
        DisputeCategory.CLEANING_REQUIRED,
        writeup="Deep clean needed after a party.",
        evidence_urls=EVIDENCE,
        claimed_amount=20_000,
        now=at(HOST_DAY),
    )
    with pytest.raises(ValidationError):
        await dispute_service.resolve_dispute(db, dispute.id, DisputeOutcome.PARTIAL, 25_000, admin.user_id)
    resolved = await dispute_service.resolve_dispute(db, dispute.id, DisputeOutcome.ACCEPTED, None, admin.user_id)
    assert resolved.approved_amount == 20_000


async def test_resolve_twice_rejected(db, checked_in_booking, guest, admin):
    dispute = await open_guest_dispute(db, checked_in_booking, guest)
    await dispute_service.resolve_dispute(db, dispute.id, DisputeOutcome.REJECTED, None, admin.user_id)
    with pytest.raises(InvalidTransitionError):
        await dispute_service.resolve_dispute(db, dispute.id, DisputeOutcome.ACCEPTED, None, admin.user_id)


async def test_ceiling_table(checked_in_booking):
    assert dispute_service.ceiling_for(checked_in_booking, DisputeCategory.MISSING_AMENITIES_CLEANLINESS) == 30_000
    assert dispute_service.ceiling_for(checked_in_booking, DisputeCategory.MAJOR_MISREPRESENTATION) == 100_000
    assert dispute_service.ceiling_for(checked_in_booking, DisputeCategory.OTHER_DEPOSIT_CLAIM) == 50_000

"""Tests for payout accounts, requests and gateway outcomes."""

import uuid
from datetime import date

import httpx
import pytest
from cryptography.exceptions import InvalidTag

from shortlet.config import settings
from shortlet.core.encryption import open_account_number
from shortlet.core.exceptions import (
    ConcurrentUpdateError,
    InsufficientBalanceError,
    InvalidTransitionError,
    NotFoundError,
    PayoutAccountMissingError,
    ValidationError,
)
from shortlet.domain.payout_state import PayoutStatus
from shortlet.gateways.base import GatewayType, PayoutGateway, TransferResult
from shortlet.repositories.payout import PayoutAccountRepository, PayoutRequestRepository
from shortlet.services.payout_service import payout_service
from shortlet.services.settlement_service import settlement_service

from helpers import at

ACCOUNT_NUMBER = "0123456789"


class RejectingGateway(PayoutGateway):
    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def initiate_transfer(self, amount, currency, reference, destination, narration):
        return TransferResult(success=False, error_message="Account closed")

    def verify_webhook(self, payload, signature):
        return None


class InspectingGateway(RejectingGateway):
    """Accepts the transfer, recording what the database held when it started."""

    def __init__(self, db, session_factory):
        self.db = db
        self.session_factory = session_factory
        self.in_transaction = None
        self.stored_status = None

    async def initiate_transfer(self, amount, currency, reference, destination, narration):
        self.in_transaction = self.db.in_transaction()
        async with self.session_factory() as session:
            stored = await PayoutRequestRepository(session).get_by_reference(reference)
            self.stored_status = stored.status
        return TransferResult(success=True, transaction_id="TRF-100")


class UnreachableGateway(RejectingGateway):
    async def initiate_transfer(self, amount, currency, reference, destination, narration):
        raise httpx.ConnectError("gateway unreachable")


@pytest.fixture
async def released_funds(db, checked_in_booking):
    """110,000 kobo released to the host (90,000 room share + 20,000 cleaning)."""
    await settlement_service.settle_booking(db, checked_in_booking.id, at(date(2024, 6, 13)))
    await db.commit()
    return checked_in_booking


@pytest.fixture
async def account(db, host):
    account = await payout_service.register_payout_account(
        db,
        host_id=host.user_id,
        bank_code="058",
        bank_name="GTBank",
        account_name="Ada Host",
        account_number=ACCOUNT_NUMBER,
    )
    await db.commit()
    return account


@pytest.fixture
async def pending_payout(db, host, released_funds, account):
    payout = await payout_service.request_payout(db, host.user_id, 100_000, now=at(date(2024, 6, 14)))
    await db.commit()
    return payout


@pytest.fixture
async def processing_payout(db, pending_payout):
    payout = await payout_service.dispatch_payout(db, pending_payout.id)
    await db.commit()
    return payout


class TestPayoutAccount:
    async def test_account_number_is_masked_and_encrypted(self, host, account):
        assert account.account_number_masked == "******6789"
        assert ACCOUNT_NUMBER.encode() not in account.account_number_encrypted
        assert open_account_number(account.account_number_encrypted, host.user_id) == ACCOUNT_NUMBER

    async def test_ciphertext_is_bound_to_host(self, account):
        with pytest.raises(InvalidTag):
            open_account_number(account.account_number_encrypted, uuid.uuid4())

    async def test_register_again_replaces_details(self, db, host, account):
        updated = await payout_service.register_payout_account(
            db, host.user_id, "044", "Access Bank", "Ada Host", "9876 543 210"
        )
        assert updated.id == account.id
        assert updated.bank_code == "044"
        assert updated.account_number_masked == "******3210"

    @pytest.mark.parametrize("number", ["12345", "0123abc789", "1" * 21])
    async def test_invalid_account_number(self, db, host, number):
        with pytest.raises(ValidationError):
            await payout_service.register_payout_account(db, host.user_id, "058", "GTBank", "Ada Host", number)


class TestRequestPayout:
    async def test_balance_counts_released_funds(self, db, host, released_funds):
        assert await payout_service.get_available_balance(db, host.user_id) == 110_000

    async def test_no_balance_before_release(self, db, host, checked_in_booking):
        assert await payout_service.get_available_balance(db, host.user_id) == 0

    async def test_requires_account(self, db, host, released_funds):
        with pytest.raises(PayoutAccountMissingError):
            await payout_service.request_payout(db, host.user_id, 100_000)

    async def test_insufficient_balance(self, db, host, released_funds, account):
        with pytest.raises(InsufficientBalanceError):
            await payout_service.request_payout(db, host.user_id, 200_000)

    async def test_below_minimum(self, db, host, released_funds, account):
        with pytest.raises(ValidationError):
            await payout_service.request_payout(db, host.user_id, 50_000)

    @pytest.mark.parametrize("amount", [0, -100_000, 150_000.0, True])
    async def test_amount_must_be_positive_int(self, db, host, released_funds, account, amount):
        with pytest.raises(ValidationError):
            await payout_service.request_payout(db, host.user_id, amount)

    async def test_request_claims_funds(self, db, host, pending_payout):
        assert pending_payout.status == PayoutStatus.PENDING
        assert pending_payout.amount == 100_000
        assert pending_payout.reference.startswith("PAY-")
        assert sum(c.amount for c in pending_payout.claims) == 100_000
        assert await payout_service.get_available_balance(db, host.user_id) == 10_000

    async def test_claimed_funds_cannot_back_second_request(self, db, host, pending_payout):
        with pytest.raises(InsufficientBalanceError):
            await payout_service.request_payout(db, host.user_id, 100_000)

    async def test_listed_for_host(self, db, host, pending_payout):
        requests = await payout_service.list_requests(db, host.user_id)
        assert [r.id for r in requests] == [pending_payout.id]


class TestDispatchAndCallback:
    async def test_dispatch_moves_to_processing(self, processing_payout):
        assert processing_payout.status == PayoutStatus.PROCESSING
        assert processing_payout.gateway == "manual"
        assert processing_payout.gateway_transaction_id == f"manual_{processing_payout.reference}"

    async def test_dispatch_twice_rejected(self, db, processing_payout):
        with pytest.raises(InvalidTransitionError):
            await payout_service.dispatch_payout(db, processing_payout.id)

    async def test_gateway_rejection_returns_funds(self, db, host, pending_payout):
        payout = await payout_service.dispatch_payout(db, pending_payout.id, gateway=RejectingGateway())
        assert payout.status == PayoutStatus.FAILED
        assert payout.failure_reason == "Account closed"
        assert await payout_service.get_available_balance(db, host.user_id) == 110_000

    async def test_completed_callback(self, db, host, processing_payout):
        payout = await payout_service.handle_gateway_callback(
            db, processing_payout.reference, "COMPLETED", transaction_id="TRF-991"
        )
        assert payout.status == PayoutStatus.COMPLETED
        assert payout.completed_at is not None
        assert payout.gateway_transaction_id == "TRF-991"
        assert await payout_service.get_available_balance(db, host.user_id) == 10_000

    async def test_repeated_callback_is_noop(self, db, processing_payout):
        first = await payout_service.handle_gateway_callback(db, processing_payout.reference, "COMPLETED")
        completed_at = first.completed_at
        again = await payout_service.handle_gateway_callback(db, processing_payout.reference, "COMPLETED")
        assert again.status == PayoutStatus.COMPLETED
        assert again.completed_at == completed_at

    async def test_failed_callback_returns_funds(self, db, host, processing_payout):
        payout = await payout_service.handle_gateway_callback(
            db, processing_payout.reference, PayoutStatus.FAILED, failure_reason="Beneficiary bank offline"
        )
        assert payout.status == PayoutStatus.FAILED
        assert payout.failure_reason == "Beneficiary bank offline"
        assert all(c.released_at is not None for c in payout.claims)
        assert await payout_service.get_available_balance(db, host.user_id) == 110_000

        # the same funds can be requested again
        retry = await payout_service.request_payout(db, host.user_id, 110_000)
        assert retry.status == PayoutStatus.PENDING

    async def test_failed_after_completed_rejected(self, db, processing_payout):
        await payout_service.handle_gateway_callback(db, processing_payout.reference, "COMPLETED")
        with pytest.raises(InvalidTransitionError):
            await payout_service.handle_gateway_callback(db, processing_payout.reference, "FAILED")

    async def test_pending_cannot_complete(self, db, pending_payout):
        with pytest.raises(InvalidTransitionError):
            await payout_service.handle_gateway_callback(db, pending_payout.reference, "COMPLETED")

    async def test_unknown_reference(self, db):
        with pytest.raises(NotFoundError):
            await payout_service.handle_gateway_callback(db, "PAY-20240614-9999", "COMPLETED")

    @pytest.mark.parametrize("status", ["PROCESSING", "SETTLED"])
    async def test_callback_status_must_be_final(self, db, processing_payout, status):
        with pytest.raises(ValidationError):
            await payout_service.handle_gateway_callback(db, processing_payout.reference, status)

    async def test_processing_is_committed_before_transfer(self, db, pending_payout, session_factory):
        gateway = InspectingGateway(db, session_factory)
        payout = await payout_service.dispatch_payout(db, pending_payout.id, gateway=gateway)

        assert gateway.in_transaction is False
        assert gateway.stored_status == PayoutStatus.PROCESSING
        assert payout.gateway_transaction_id == "TRF-100"

    async def test_unreachable_gateway_leaves_request_processing(self, db, host, pending_payout, session_factory):
        with pytest.raises(httpx.ConnectError):
            await payout_service.dispatch_payout(db, pending_payout.id, gateway=UnreachableGateway())
        await db.rollback()

        # the callback settles it later; the funds stay claimed meanwhile
        async with session_factory() as session:
            stored = await PayoutRequestRepository(session).get_by_reference(pending_payout.reference)
            assert stored.status == PayoutStatus.PROCESSING
            assert await payout_service.get_available_balance(session, host.user_id) == 10_000


class TestPayoutCurrency:
    async def test_currency_follows_claimed_funds(self, db, host, released_funds, account, monkeypatch):
        monkeypatch.setattr(settings, "currency", "USD")
        payout = await payout_service.request_payout(db, host.user_id, 100_000)
        assert payout.currency == "NGN"

    async def test_no_funds_in_requested_currency(self, db, host, released_funds, account):
        with pytest.raises(InsufficientBalanceError):
            await payout_service.request_payout(db, host.user_id, 100_000, currency="USD")


class TestConcurrentRequests:
    async def test_second_request_for_same_funds_loses(self, host, released_funds, account, session_factory):
        async with session_factory() as first, session_factory() as second:
            await PayoutAccountRepository(first).get_for_host(host.user_id)
            await PayoutAccountRepository(second).get_for_host(host.user_id)

            await payout_service.request_payout(first, host.user_id, 100_000, now=at(date(2024, 6, 14)))
            await first.commit()

            with pytest.raises(ConcurrentUpdateError):
                await payout_service.request_payout(second, host.user_id, 100_000, now=at(date(2024, 6, 14), 13))
            await second.rollback()

        # a retry sees the first request's claims
        async with session_factory() as session:
            with pytest.raises(InsufficientBalanceError):
                await payout_service.request_payout(session, host.user_id, 100_000)
            assert await payout_service.get_available_balance(session, host.user_id) == 10_000
            assert len(await payout_service.list_requests(session, host.user_id)) == 1

"""Host payout service.

A host withdraws against released escrow funds. A request claims specific
release events (oldest first) so the same funds can never back two
requests; a FAILED request hands its claims back.

Every balance change for a host bumps the version of that host's payout
account, which serializes concurrent requests and callbacks per host.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from shortlet.config import settings
from shortlet.core.clock import local_date, utcnow
from shortlet.core.encryption import open_account_number, seal_account_number
from shortlet.core.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    PayoutAccountMissingError,
    ValidationError,
)
from shortlet.database import commit
from shortlet.domain.payout_state import PayoutStatus, assert_payout_transition
from shortlet.gateways import get_gateway
from shortlet.gateways.base import PayoutDestination, PayoutGateway
from shortlet.models.payout import PayoutAccount, PayoutClaim, PayoutRequest
from shortlet.repositories.payout import PayoutAccountRepository, PayoutRequestRepository
from shortlet.repositories.release_event import ReleaseEventRepository
from shortlet.services.audit_service import audit_service
from shortlet.services.notification_service import NotificationService, notification_service
from shortlet.utils.booking_number import generate_payout_reference

logger = logging.getLogger(__name__)


def assert_positive_amount(amount: int, context: str) -> None:
    """Guard: Prevent negative or zero amounts."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(f"{context}: amount must be a positive whole number of kobo, got {amount}")


class PayoutService:
    """Payout accounts, payout requests and gateway outcomes."""

    async def _lock_account(self, db: AsyncSession, account: PayoutAccount, now: datetime) -> None:
        # Version bump; the loser of a concurrent pair fails here.
        account.updated_at = now
        flag_modified(account, "updated_at")
        await PayoutAccountRepository(db).flush(account.host_id)

    async def register_payout_account(
        self,
        db: AsyncSession,
        host_id: UUID,
        bank_code: str,
        bank_name: str,
        account_name: str,
        account_number: str,
        now: datetime | None = None,
    ) -> PayoutAccount:
        """Create or replace the host's payout destination.

        The account number is stored encrypted, with a masked copy for display.
        """
        now = now or utcnow()
        account_number = account_number.replace(" ", "")
        if not account_number.isdigit() or not 6 <= len(account_number) <= 20:
            raise ValidationError("account_number must be 6-20 digits")
        if not bank_code.strip() or not account_name.strip():
            raise ValidationError("bank_code and account_name are required")

        repo = PayoutAccountRepository(db)
        account = await repo.get_for_host(host_id)
        sealed = seal_account_number(account_number, host_id)

        if account is None:
            account = PayoutAccount(host_id=host_id)
            repo.add(account)
        account.bank_code = bank_code.strip()
        account.bank_name = bank_name.strip()
        account.account_name = account_name.strip()
        account.account_number_encrypted = sealed.ciphertext
        account.account_number_masked = sealed.masked
        account.updated_at = now
        await repo.flush(host_id)

        await audit_service.log_financial_action(
            db=db,
            user_id=host_id,
            action="payout_account_register",
            resource_type="payout_account",
            resource_id=account.id,
            new_values={"bank_code": account.bank_code, "account_number": sealed.masked},
        )
        logger.info(f"Payout account {sealed.masked} registered for host {host_id}")
        return account

    async def get_available_balance(self, db: AsyncSession, host_id: UUID) -> int:
        """RELEASED funds not yet claimed by a payout request (kobo)."""
        return await ReleaseEventRepository(db).available_balance(host_id)

    async def request_payout(
        self,
        db: AsyncSession,
        host_id: UUID,
        amount: int,
        now: datetime | None = None,
        currency: str | None = None,
    ) -> PayoutRequest:
        """Claim ``amount`` of the host's released funds for withdrawal.

        Args:
            db: Database session
            host_id: Requesting host
            amount: Amount in kobo
            now: Current instant
            currency: Currency of the funds to withdraw; defaults to that of
                the host's oldest unclaimed release

        Returns:
            PENDING PayoutRequest with its claims

        Raises:
            ValidationError: If amount is not positive or below the minimum
            PayoutAccountMissingError: If the host has no payout account
            InsufficientBalanceError: If amount exceeds the available balance
            ConcurrentUpdateError: If another request for the host won the race
        """
        now = now or utcnow()
        assert_positive_amount(amount, "Payout")
        if amount < settings.minimum_payout_amount:
            raise ValidationError(
                f"Minimum payout is {settings.minimum_payout_amount} kobo, got {amount}"
            )

        account = await PayoutAccountRepository(db).get_for_host(host_id)
        if account is None:
            raise PayoutAccountMissingError()
        await self._lock_account(db, account, now)

        events = await ReleaseEventRepository(db).list_available_for_host(host_id)
        if currency is None:
            currency = events[0].currency if events else settings.currency
        events = [e for e in events if e.currency == currency]
        available = sum(e.available_amount for e in events)
        if amount > available:
            raise InsufficientBalanceError(
                f"Requested {amount} but only {available} {currency} is available for payout"
            )

        claims: list[PayoutClaim] = []
        remaining = amount
        for event in events:
            if remaining == 0:
                break
            take = min(remaining, event.available_amount)
            if take <= 0:
                continue
            event.claimed_amount += take
            claims.append(PayoutClaim(release_event=event, amount=take))
            remaining -= take

        request = PayoutRequest(
            host_id=host_id,
            payout_account_id=account.id,
            reference=await generate_payout_reference(db, local_date(now)),
            amount=amount,
            currency=currency,
            status=PayoutStatus.PENDING,
            requested_at=now,
            claims=claims,
        )
        repo = PayoutRequestRepository(db)
        repo.add(request)
        await repo.flush(request.reference)

        await audit_service.log_status_change(
            db, host_id, "payout_request", "payout", request.id,
            None, PayoutStatus.PENDING.value,
            amount=amount, reference=request.reference, claims=len(claims),
        )
        logger.info(
            f"Payout {request.reference} requested by host {host_id}: amount={amount} "
            f"from {len(claims)} release event(s), {available - amount} left"
        )
        notification_service.notify_after_commit(
            db,
            NotificationService.PAYOUT_REQUESTED,
            host_id,
            {"reference": request.reference, "amount": amount},
        )
        return request

    async def dispatch_payout(
        self,
        db: AsyncSession,
        request_id: UUID,
        gateway: PayoutGateway | None = None,
        now: datetime | None = None,
    ) -> PayoutRequest:
        """Hand a PENDING request to the payment gateway.

        The request is committed as PROCESSING before the gateway is called,
        so no transfer starts for a request the database does not show in
        flight. A rejected transfer then moves it to FAILED with the funds
        returned; a gateway error leaves it PROCESSING for the callback.

        Raises:
            InvalidTransitionError: If the request is not PENDING
            ConcurrentUpdateError: If another dispatch or request for the
                host committed first
        """
        now = now or utcnow()
        gateway = gateway or get_gateway()
        repo = PayoutRequestRepository(db)
        request = await repo.get_or_404(request_id)
        assert_payout_transition(PayoutStatus(request.status), PayoutStatus.PROCESSING)

        account = await PayoutAccountRepository(db).get_or_404(request.payout_account_id)
        destination = PayoutDestination(
            bank_code=account.bank_code,
            bank_name=account.bank_name,
            account_name=account.account_name,
            account_number=open_account_number(account.account_number_encrypted, account.host_id),
        )
        await self._lock_account(db, account, now)

        request.status = PayoutStatus.PROCESSING
        request.gateway = gateway.gateway_type.value
        request.processing_at = now
        await repo.flush(request.reference)
        await audit_service.log_status_change(
            db, None, "payout_processing", "payout", request.id,
            PayoutStatus.PENDING.value, PayoutStatus.PROCESSING.value,
            gateway=request.gateway,
        )
        await commit(db)

        result = await gateway.initiate_transfer(
            amount=request.amount,
            currency=request.currency,
            reference=request.reference,
            destination=destination,
            narration=f"Payout {request.reference}",
        )
        if not result.success:
            await self._fail(db, request, result.error_message or "Gateway rejected the transfer", now)
            return request

        request.gateway_transaction_id = result.transaction_id
        await repo.flush(request.reference)
        logger.info(
            f"Payout {request.reference} accepted by {request.gateway}: {result.transaction_id}"
        )
        return request

    async def handle_gateway_callback(
        self,
        db: AsyncSession,
        reference: str,
        status: PayoutStatus | str,
        transaction_id: str | None = None,
        failure_reason: str | None = None,
        now: datetime | None = None,
    ) -> PayoutRequest:
        """Apply a gateway's final outcome to a payout request.

        Repeating a callback that was already applied changes nothing.

        Raises:
            NotFoundError: If no request has this reference
            ValidationError: If status is not COMPLETED or FAILED
            InvalidTransitionError: If the request already reached another outcome
        """
        now = now or utcnow()
        try:
            target = PayoutStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown payout status: {status}")
        if target not in (PayoutStatus.COMPLETED, PayoutStatus.FAILED):
            raise ValidationError("Gateway callbacks must report COMPLETED or FAILED")

        repo = PayoutRequestRepository(db)
        request = await repo.get_by_reference(reference)
        if request is None:
            raise NotFoundError("PayoutRequest", reference)

        current = PayoutStatus(request.status)
        if current == target:
            logger.info(f"Payout {reference} already {target.value}; callback ignored")
            return request
        assert_payout_transition(current, target)

        if transaction_id:
            request.gateway_transaction_id = transaction_id

        if target == PayoutStatus.FAILED:
            await self._fail(db, request, failure_reason or "Transfer failed", now)
            return request

        request.status = PayoutStatus.COMPLETED
        request.completed_at = now
        await repo.flush(reference)
        await audit_service.log_status_change(
            db, None, "payout_complete", "payout", request.id,
            current.value, PayoutStatus.COMPLETED.value, amount=request.amount,
        )
        logger.info(f"Payout {reference} completed: amount={request.amount}")
        notification_service.notify_after_commit(
            db,
            NotificationService.PAYOUT_COMPLETED,
            request.host_id,
            {"reference": reference, "amount": request.amount},
        )
        return request

    async def _fail(self, db: AsyncSession, request: PayoutRequest, reason: str, now: datetime) -> None:
        """Mark FAILED and return every claimed portion to the pool."""
        old_status = PayoutStatus(request.status)
        assert_payout_transition(old_status, PayoutStatus.FAILED)

        account = await PayoutAccountRepository(db).get_or_404(request.payout_account_id)
        await self._lock_account(db, account, now)

        returned = 0
        for claim in request.claims:
            if claim.released_at is not None:
                continue
            claim.release_event.claimed_amount -= claim.amount
            claim.released_at = now
            returned += claim.amount

        request.status = PayoutStatus.FAILED
        request.failure_reason = reason
        request.failed_at = now
        await PayoutRequestRepository(db).flush(request.reference)

        await audit_service.log_status_change(
            db, None, "payout_fail", "payout", request.id,
            old_status.value, PayoutStatus.FAILED.value,
            reason=reason, returned=returned,
        )
        logger.warning(f"Payout {request.reference} failed ({reason}); {returned} returned to balance")
        notification_service.notify_after_commit(
            db,
            NotificationService.PAYOUT_FAILED,
            request.host_id,
            {"reference": request.reference, "reason": reason},
        )

    async def list_requests(self, db: AsyncSession, host_id: UUID) -> list[PayoutRequest]:
        return await PayoutRequestRepository(db).list_for_host(host_id)


payout_service = PayoutService()

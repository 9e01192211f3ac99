"""Manual payout gateway adapter for bank transfers made by the operations team."""

import hashlib
import hmac
import json
import logging

from shortlet.config import settings
from shortlet.gateways.base import (
    GatewayType,
    PayoutDestination,
    PayoutGateway,
    TransferResult,
)

logger = logging.getLogger(__name__)


def sign_payload(payload: bytes, secret: str | None = None) -> str:
    """Hex HMAC-SHA256 of ``payload`` with the payout webhook secret."""
    key = (secret or settings.payout_webhook_secret).encode("utf-8")
    return hmac.new(key, payload, hashlib.sha256).hexdigest()


class ManualGateway(PayoutGateway):
    """Manual payout gateway.

    Transfers are accepted immediately and completed by an operator, who
    reports the outcome through the signed payout callback.
    """

    def __init__(self, webhook_secret: str | None = None) -> None:
        self.webhook_secret = webhook_secret or settings.payout_webhook_secret

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def initiate_transfer(
        self,
        amount: int,
        currency: str,
        reference: str,
        destination: PayoutDestination,
        narration: str,
    ) -> TransferResult:
        """Queue a manual transfer (always accepted)."""
        if amount <= 0:
            return TransferResult(success=False, error_message="Amount must be positive")
        return TransferResult(
            success=True,
            transaction_id=f"manual_{reference}",
            raw_response={
                "type": "bank_transfer",
                "status": "pending_operator",
                "bank_code": destination.bank_code,
                "amount": amount,
                "currency": currency,
                "narration": narration,
            },
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify the HMAC-SHA256 signature and parse the JSON body."""
        if not signature:
            return None
        expected = sign_payload(payload, self.webhook_secret)
        if not hmac.compare_digest(expected, signature):
            logger.warning("Payout webhook signature mismatch")
            return None
        try:
            data = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Payout webhook payload is not valid JSON")
            return None
        return data if isinstance(data, dict) else None

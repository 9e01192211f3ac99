"""Base payout gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payout gateways."""

    MANUAL = "manual"


@dataclass
class PayoutDestination:
    """Where a transfer goes (decrypted account details)."""

    bank_code: str
    bank_name: str
    account_name: str
    account_number: str


@dataclass
class TransferResult:
    """Result of a transfer initiation."""

    success: bool
    transaction_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PayoutGateway(ABC):
    """Abstract base class for payout gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def initiate_transfer(
        self,
        amount: int,
        currency: str,
        reference: str,
        destination: PayoutDestination,
        narration: str,
    ) -> TransferResult:
        """Start a transfer to a host's account.

        The final outcome arrives later through :meth:`verify_webhook`.

        Args:
            amount: Amount in smallest currency unit (kobo)
            currency: Currency code (NGN)
            reference: Payout request reference
            destination: Host bank account
            narration: Text shown on the host's statement

        Returns:
            TransferResult; success means the gateway accepted the transfer
        """
        pass

    @abstractmethod
    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify webhook signature and parse payload.

        Args:
            payload: Raw request body
            signature: Webhook signature header

        Returns:
            Parsed event dict if valid, None if invalid
        """
        pass

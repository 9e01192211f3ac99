"""Notification service.

Status transitions (confirmed, checked in, disputed, released, paid out) are
posted as JSON to the notification collaborator's webhook. Delivery is fire
and forget: a failure is logged and never reaches the caller. Notifications
about a database change are queued on the session and only sent once that
change has committed.
"""

import logging
from datetime import UTC, datetime
from functools import partial
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.config import settings
from shortlet.database import call_after_commit

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends booking lifecycle notifications."""

    # Notification types
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_CHECKED_IN = "booking_checked_in"
    BOOKING_CHECKED_OUT = "booking_checked_out"
    BOOKING_COMPLETED = "booking_completed"
    DEPOSIT_RETURNED = "deposit_returned"
    DISPUTE_OPENED = "dispute_opened"
    DISPUTE_RESOLVED = "dispute_resolved"
    FUNDS_RELEASED = "funds_released"
    PAYOUT_REQUESTED = "payout_requested"
    PAYOUT_COMPLETED = "payout_completed"
    PAYOUT_FAILED = "payout_failed"

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None) -> None:
        self.webhook_url = webhook_url if webhook_url is not None else settings.notification_webhook_url
        self.timeout = timeout if timeout is not None else settings.notification_timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def notify(
        self,
        notification_type: str,
        recipient_id: UUID | None,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Send one notification.

        Args:
            notification_type: One of the class-level type constants
            recipient_id: User to notify
            data: Extra payload (ids, amounts)

        Returns:
            bool: True if delivered (or logged, when no webhook is configured)
        """
        payload = {
            "type": notification_type,
            "recipient_id": str(recipient_id) if recipient_id else None,
            "data": data or {},
            "sent_at": datetime.now(UTC).isoformat(),
        }

        if not self.webhook_url:
            logger.info(f"Notification {notification_type} for {recipient_id}: {payload['data']}")
            return True

        try:
            response = await self.http_client.post(self.webhook_url, json=payload)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning(f"Notification {notification_type} for {recipient_id} failed: {e}")
            return False

    def notify_after_commit(
        self,
        db: AsyncSession,
        notification_type: str,
        recipient_id: UUID | None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Send a notification once ``db`` commits; nothing is sent on rollback."""
        call_after_commit(db, partial(self.notify, notification_type, recipient_id, data))


notification_service = NotificationService()

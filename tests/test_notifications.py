"""Tests for notification delivery."""

import httpx
import pytest

from shortlet.core.exceptions import WindowClosedError
from shortlet.database import get_db_context
from shortlet.services.booking_service import booking_service
from shortlet.services.notification_service import NotificationService, notification_service

from helpers import CHECK_IN, at


@pytest.fixture
def sent(monkeypatch):
    delivered = []

    async def record(notification_type, recipient_id, data=None):
        delivered.append((notification_type, recipient_id))
        return True

    monkeypatch.setattr(notification_service, "notify", record)
    return delivered


async def test_sent_once_committed(confirmed_booking, guest, session_factory, sent):
    async with get_db_context(session_factory) as db:
        await booking_service.check_in(db, confirmed_booking.id, guest, now=at(CHECK_IN, 15))
        assert sent == []

    assert sent == [(NotificationService.BOOKING_CHECKED_IN, confirmed_booking.host_id)]


async def test_dropped_on_rollback(confirmed_booking, guest, session_factory, sent):
    with pytest.raises(WindowClosedError):
        async with get_db_context(session_factory) as db:
            await booking_service.check_in(db, confirmed_booking.id, guest, now=at(CHECK_IN, 15))
            raise WindowClosedError("a later step failed")

    assert sent == []


async def test_webhook_failure_is_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    service = NotificationService(webhook_url="https://hooks.example.com/shortlet")
    service._http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    try:
        assert await service.notify(NotificationService.BOOKING_CONFIRMED, None) is False
    finally:
        await service.close()


async def test_webhook_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(200)

    service = NotificationService(webhook_url="https://hooks.example.com/shortlet")
    service._http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    try:
        assert await service.notify(NotificationService.FUNDS_RELEASED, None, {"amount": 90_000}) is True
    finally:
        await service.close()

    assert b'"type":"funds_released"' in received[0].content.replace(b" ", b"")

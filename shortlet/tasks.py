"""Celery background tasks.

Thin wrappers around the service batch passes. The settlement pass is also
run by the ``shortlet-settle`` entry point and the internal HTTP trigger.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from celery import shared_task

from shortlet.core.exceptions import TransientStorageError
from shortlet.database import close_db
from shortlet.services.booking_service import booking_service
from shortlet.services.settlement_service import settlement_service

logger = logging.getLogger(__name__)


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run async function in sync context.

    Each task gets a fresh event loop, so the engine is disposed before the
    loop closes.
    """

    async def _run() -> Any:
        try:
            return await coro
        finally:
            await close_db()

    return asyncio.run(_run())


@shared_task(bind=True, max_retries=3)
def run_settlement_pass(self):
    """Release due escrow funds and complete finished bookings."""
    try:
        result = run_async(settlement_service.run_settlement_pass())
    except TransientStorageError as exc:
        logger.warning(f"Settlement pass could not start: {exc}")
        raise self.retry(exc=exc, countdown=60)
    return {"status": "success", **result.to_dict()}


@shared_task(bind=True, max_retries=3)
def activate_due_bookings(self):
    """Move confirmed bookings whose check-in day has arrived to ACTIVE."""
    try:
        result = run_async(booking_service.activate_due_bookings())
    except TransientStorageError as exc:
        logger.warning(f"Activation pass could not start: {exc}")
        raise self.retry(exc=exc, countdown=60)
    return {"status": "success", **result}


@shared_task(bind=True, max_retries=3)
def auto_check_out_due_bookings(self):
    """Check out guests still checked in after the scheduled check-out time."""
    try:
        result = run_async(booking_service.auto_check_out_due_bookings())
    except TransientStorageError as exc:
        logger.warning(f"Check-out pass could not start: {exc}")
        raise self.retry(exc=exc, countdown=60)
    return {"status": "success", **result}

"""Booking number and payout reference generation utilities."""

import random
import string
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_CHARS = string.ascii_uppercase + string.digits


async def generate_booking_number(db: AsyncSession) -> str:
    """Generate a unique booking number in format STL-XXXXXX.

    Args:
        db: Database session for uniqueness check

    Returns:
        str: Unique booking number like 'STL-A3B7K9'
    """
    from shortlet.models.booking import Booking

    while True:
        booking_number = f"STL-{''.join(random.choices(_CHARS, k=6))}"
        result = await db.execute(
            select(Booking.id).where(Booking.booking_number == booking_number)
        )
        if result.first() is None:
            return booking_number


async def generate_payout_reference(db: AsyncSession, today: date) -> str:
    """Generate a unique payout reference.

    Args:
        db: Database session for uniqueness check
        today: Canonical calendar day of the request

    Returns:
        str: Payout reference like 'PAY-20240615-K9M2X7'
    """
    from shortlet.models.payout import PayoutRequest

    date_part = today.strftime("%Y%m%d")
    while True:
        reference = f"PAY-{date_part}-{''.join(random.choices(_CHARS, k=6))}"
        result = await db.execute(
            select(PayoutRequest.id).where(PayoutRequest.reference == reference)
        )
        if result.first() is None:
            return reference

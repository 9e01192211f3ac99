"""Dates, amounts and clock helpers shared by the tests."""

from datetime import UTC, date, datetime, time

from shortlet.core.clock import canonical_tz

CHECK_IN = date(2024, 6, 10)
CHECK_OUT = date(2024, 6, 13)
BOOKED_ON = date(2024, 6, 1)

ROOM_FEE = 100_000
CLEANING_FEE = 20_000
SECURITY_DEPOSIT = 50_000

EVIDENCE = ["https://media.example.com/uploads/photo-1.jpg"]
WRITEUP = "The air conditioning did not work for the whole stay."


def at(day: date, hour: int = 12) -> datetime:
    """Instant at ``hour`` o'clock on ``day`` in the canonical timezone, as UTC."""
    return datetime.combine(day, time(hour), tzinfo=canonical_tz()).astimezone(UTC)

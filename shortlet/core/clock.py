"""Canonical-timezone calendar helpers.

Every business date comparison (check-in day, dispute deadlines, release
eligibility) is made on calendar dates in ``settings.canonical_timezone``,
never on absolute instants.
"""

from datetime import UTC, date, datetime, time
from functools import lru_cache
from zoneinfo import ZoneInfo

from shortlet.config import settings


@lru_cache
def canonical_tz(name: str | None = None) -> ZoneInfo:
    return ZoneInfo(name or settings.canonical_timezone)


def utcnow() -> datetime:
    return datetime.now(UTC)


def local_date(instant: datetime, tz: ZoneInfo | None = None) -> date:
    """Calendar date of ``instant`` in the canonical timezone.

    Naive datetimes are treated as UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(tz or canonical_tz()).date()


def start_of_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """First instant of ``day`` in the canonical timezone, expressed in UTC."""
    return datetime.combine(day, time.min, tzinfo=tz or canonical_tz()).astimezone(UTC)

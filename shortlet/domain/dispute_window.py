"""Dispute window calculation.

Windows are derived, never stored. Each party's window is anchored on a
calendar day recorded on the booking (the actual check-in day for guests,
the actual check-out day for hosts) and lasts a configured number of
calendar days in the canonical timezone. A window that opens on day D with
a length of N days accepts disputes on D .. D+N-1 and expires at the first
instant of D+N.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from shortlet.config import settings
from shortlet.core.clock import local_date, start_of_day
from shortlet.domain.dispute_state import DisputeParty, DisputeStatus


class WindowState(str, Enum):
    NOT_YET_OPEN = "NOT_YET_OPEN"
    OPEN = "OPEN"
    EXPIRED = "EXPIRED"
    CONSUMED = "CONSUMED"


class WindowAnchor(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


@dataclass(frozen=True)
class WindowRule:
    anchor: WindowAnchor
    length_days: int


@dataclass(frozen=True)
class WindowRules:
    """Per-party window rules."""

    guest: WindowRule
    host: WindowRule

    @classmethod
    def from_settings(cls) -> WindowRules:
        return cls(
            guest=WindowRule(WindowAnchor.CHECK_IN, settings.guest_dispute_window_days),
            host=WindowRule(WindowAnchor.CHECK_OUT, settings.host_dispute_window_days),
        )

    def for_party(self, party: DisputeParty) -> WindowRule:
        return self.guest if party == DisputeParty.GUEST else self.host


@dataclass(frozen=True)
class DisputeWindow:
    party: DisputeParty
    state: WindowState
    opens_on: date | None = None
    deadline: date | None = None
    dispute_status: DisputeStatus | None = None

    @property
    def deadline_at(self) -> datetime | None:
        """First instant (UTC) at which the window is closed."""
        if self.deadline is None:
            return None
        return start_of_day(self.deadline)

    @property
    def is_open(self) -> bool:
        return self.state == WindowState.OPEN

    @property
    def allows_release(self) -> bool:
        """Funds gated by this window may be released.

        True once the window expired unused, or once the dispute filed in it
        has been resolved.
        """
        if self.state == WindowState.EXPIRED:
            return True
        return self.state == WindowState.CONSUMED and self.dispute_status == DisputeStatus.RESOLVED


@dataclass(frozen=True)
class BookingWindows:
    guest: DisputeWindow
    host: DisputeWindow

    def for_party(self, party: DisputeParty) -> DisputeWindow:
        return self.guest if party == DisputeParty.GUEST else self.host


def _anchor_day(booking: Any, anchor: WindowAnchor) -> date | None:
    if anchor == WindowAnchor.CHECK_IN:
        return booking.checked_in_on
    return booking.checked_out_on


def _compute_window(
    booking: Any,
    party: DisputeParty,
    today: date,
    rule: WindowRule,
    dispute: Any | None,
) -> DisputeWindow:
    opens_on = _anchor_day(booking, rule.anchor)
    deadline = opens_on + timedelta(days=rule.length_days) if opens_on else None

    # A filed dispute consumes the window for good.
    if dispute is not None:
        return DisputeWindow(
            party=party,
            state=WindowState.CONSUMED,
            opens_on=opens_on,
            deadline=deadline,
            dispute_status=DisputeStatus(dispute.status),
        )

    if opens_on is None or today < opens_on:
        state = WindowState.NOT_YET_OPEN
    elif today < deadline:
        state = WindowState.OPEN
    else:
        state = WindowState.EXPIRED

    return DisputeWindow(party=party, state=state, opens_on=opens_on, deadline=deadline)


def compute_windows(
    booking: Any,
    now: datetime,
    rules: WindowRules | None = None,
    disputes: Iterable[Any] = (),
) -> BookingWindows:
    """Compute the guest and host dispute windows for a booking.

    Args:
        booking: Object exposing ``checked_in_on`` and ``checked_out_on``
        now: Current instant; only its canonical calendar day matters
        rules: Window rules (defaults to the configured ones)
        disputes: Disputes already filed against the booking

    Returns:
        BookingWindows with one DisputeWindow per party
    """
    rules = rules or WindowRules.from_settings()
    today = local_date(now)

    by_party: dict[DisputeParty, Any] = {}
    for dispute in disputes:
        by_party.setdefault(DisputeParty(dispute.opened_by), dispute)

    return BookingWindows(
        guest=_compute_window(
            booking, DisputeParty.GUEST, today, rules.guest, by_party.get(DisputeParty.GUEST)
        ),
        host=_compute_window(
            booking, DisputeParty.HOST, today, rules.host, by_party.get(DisputeParty.HOST)
        ),
    )

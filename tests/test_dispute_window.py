"""Tests for dispute window calculation."""

from datetime import UTC, date, datetime
from types import SimpleNamespace

import pytest

from shortlet.domain.dispute_state import DisputeParty, DisputeStatus
from shortlet.domain.dispute_window import (
    WindowAnchor,
    WindowRule,
    WindowRules,
    WindowState,
    compute_windows,
)

from helpers import at

RULES = WindowRules(
    guest=WindowRule(WindowAnchor.CHECK_IN, 3),
    host=WindowRule(WindowAnchor.CHECK_OUT, 3),
)


def stay(checked_in_on=None, checked_out_on=None):
    return SimpleNamespace(checked_in_on=checked_in_on, checked_out_on=checked_out_on)


def dispute(party, status=DisputeStatus.OPEN):
    return SimpleNamespace(opened_by=party, status=status)


def test_not_yet_open_before_check_in():
    windows = compute_windows(stay(), at(date(2024, 6, 10)), RULES)
    assert windows.guest.state == WindowState.NOT_YET_OPEN
    assert windows.host.state == WindowState.NOT_YET_OPEN
    assert windows.guest.deadline is None


@pytest.mark.parametrize(
    "today,expected",
    [
        (date(2024, 6, 10), WindowState.OPEN),
        (date(2024, 6, 12), WindowState.OPEN),
        (date(2024, 6, 13), WindowState.EXPIRED),
        (date(2024, 6, 20), WindowState.EXPIRED),
    ],
)
def test_guest_window_expires_after_three_days(today, expected):
    windows = compute_windows(stay(date(2024, 6, 10)), at(today), RULES)
    assert windows.guest.state == expected
    assert windows.guest.deadline == date(2024, 6, 13)


def test_deadline_is_canonical_midnight():
    windows = compute_windows(stay(date(2024, 6, 10)), at(date(2024, 6, 10)), RULES)
    # Africa/Lagos is UTC+1
    assert windows.guest.deadline_at == datetime(2024, 6, 12, 23, 0, tzinfo=UTC)


def test_calendar_day_follows_canonical_timezone():
    # 23:30 UTC on the 12th is already the 13th in Lagos
    late = datetime(2024, 6, 12, 23, 30, tzinfo=UTC)
    windows = compute_windows(stay(date(2024, 6, 10)), late, RULES)
    assert windows.guest.state == WindowState.EXPIRED


def test_host_window_anchors_on_check_out():
    booking = stay(date(2024, 6, 10), date(2024, 6, 13))
    windows = compute_windows(booking, at(date(2024, 6, 14)), RULES)
    assert windows.guest.state == WindowState.EXPIRED
    assert windows.host.state == WindowState.OPEN
    assert windows.host.opens_on == date(2024, 6, 13)
    assert windows.host.deadline == date(2024, 6, 16)


def test_filed_dispute_consumes_window():
    windows = compute_windows(
        stay(date(2024, 6, 10)),
        at(date(2024, 6, 11)),
        RULES,
        [dispute(DisputeParty.GUEST)],
    )
    assert windows.guest.state == WindowState.CONSUMED
    assert not windows.guest.allows_release
    assert windows.host.state == WindowState.NOT_YET_OPEN


def test_consumed_window_releases_once_resolved():
    windows = compute_windows(
        stay(date(2024, 6, 10)),
        at(date(2024, 6, 11)),
        RULES,
        [dispute(DisputeParty.GUEST, DisputeStatus.RESOLVED)],
    )
    assert windows.guest.state == WindowState.CONSUMED
    assert windows.guest.allows_release


def test_open_window_never_allows_release():
    windows = compute_windows(stay(date(2024, 6, 10)), at(date(2024, 6, 11)), RULES)
    assert windows.guest.is_open
    assert not windows.guest.allows_release


def test_rules_from_settings():
    rules = WindowRules.from_settings()
    assert rules.for_party(DisputeParty.GUEST).anchor == WindowAnchor.CHECK_IN
    assert rules.for_party(DisputeParty.HOST).anchor == WindowAnchor.CHECK_OUT

"""Tests for the settlement entry points (cron script and Celery tasks)."""

import pytest

from shortlet import settle, tasks
from shortlet.core.exceptions import TransientStorageError
from shortlet.services.booking_service import booking_service
from shortlet.services.settlement_service import SettlementResult, settlement_service


def test_exit_zero_when_pass_runs(monkeypatch):
    async def fake_pass(*args, **kwargs):
        return SettlementResult(processed=3, released=2, errors=1, completed=1)

    monkeypatch.setattr(settlement_service, "run_settlement_pass", fake_pass)
    assert settle.main() == 0


def test_exit_one_when_pass_cannot_run(monkeypatch):
    async def unreachable(*args, **kwargs):
        raise TransientStorageError("database unavailable")

    monkeypatch.setattr(settlement_service, "run_settlement_pass", unreachable)
    assert settle.main() == 1


def test_settlement_task_reports_counts(monkeypatch):
    async def fake_pass(*args, **kwargs):
        return SettlementResult(processed=1, released=2)

    monkeypatch.setattr(settlement_service, "run_settlement_pass", fake_pass)
    assert tasks.run_settlement_pass() == {
        "status": "success",
        "processed": 1,
        "released": 2,
        "errors": 0,
        "completed": 0,
    }


def test_settlement_task_surfaces_transient_failure(monkeypatch):
    async def unreachable(*args, **kwargs):
        raise TransientStorageError("database unavailable")

    monkeypatch.setattr(settlement_service, "run_settlement_pass", unreachable)
    # called directly, Celery's retry re-raises the original error
    with pytest.raises(TransientStorageError):
        tasks.run_settlement_pass()


def test_activation_task(monkeypatch):
    async def fake_activate(*args, **kwargs):
        return {"due": 2, "activated": 2, "errors": 0}

    monkeypatch.setattr(booking_service, "activate_due_bookings", fake_activate)
    assert tasks.activate_due_bookings() == {"status": "success", "due": 2, "activated": 2, "errors": 0}


def test_beat_schedule_runs_both_passes():
    from shortlet.config import settings
    from shortlet.worker import celery_app

    schedule = celery_app.conf.beat_schedule
    assert schedule["run-settlement-pass"]["task"] == "shortlet.tasks.run_settlement_pass"
    assert schedule["run-settlement-pass"]["schedule"] == settings.settlement_interval_minutes * 60.0
    assert schedule["activate-due-bookings"]["task"] == "shortlet.tasks.activate_due_bookings"


def test_check_out_task(monkeypatch):
    async def fake_check_out(*args, **kwargs):
        return {"due": 1, "checked_out": 1, "errors": 0}

    monkeypatch.setattr(booking_service, "auto_check_out_due_bookings", fake_check_out)
    assert tasks.auto_check_out_due_bookings() == {"status": "success", "due": 1, "checked_out": 1, "errors": 0}


def test_beat_schedule_runs_check_out_pass():
    from shortlet.worker import celery_app

    entry = celery_app.conf.beat_schedule["auto-check-out-due-bookings"]
    assert entry["task"] == "shortlet.tasks.auto_check_out_due_bookings"

"""Celery worker configuration.

Periodic jobs:
- Escrow settlement pass every ``settlement_interval_minutes``
- Activation of confirmed bookings whose check-in day has arrived
- Automatic check-out of guests past the scheduled check-out time
"""

from celery import Celery
from celery.schedules import crontab

from shortlet.config import settings

celery_app = Celery(
    "shortlet_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["shortlet.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.canonical_timezone,
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule={
        "run-settlement-pass": {
            "task": "shortlet.tasks.run_settlement_pass",
            "schedule": settings.settlement_interval_minutes * 60.0,
        },
        # Shortly after midnight in the canonical timezone, then hourly as a catch-up
        "activate-due-bookings": {
            "task": "shortlet.tasks.activate_due_bookings",
            "schedule": crontab(minute=5),
        },
        "auto-check-out-due-bookings": {
            "task": "shortlet.tasks.auto_check_out_due_bookings",
            "schedule": crontab(minute=10),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()

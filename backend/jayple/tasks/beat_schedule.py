# backend/jayple/tasks/beat_schedule.py
"""
Celery Beat schedule for the Jayple dispatch engine.

Assignment timeouts are not periodic: they are enqueued per booking with a
countdown. Only the settlement batch runs on a calendar.
"""

from typing import Any, Dict

from celery.schedules import crontab

from jayple.core.constants import SETTLEMENTS_QUEUE, WEEKLY_SETTLEMENT_TASK

CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    # Mondays 00:30 UTC, the first run of each ISO week
    "run-weekly-settlements": {
        "task": WEEKLY_SETTLEMENT_TASK,
        "schedule": crontab(day_of_week="mon", hour=0, minute=30),
        "options": {"queue": SETTLEMENTS_QUEUE},
    },
}


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return dict(CELERYBEAT_SCHEDULE)

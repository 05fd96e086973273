# backend/jayple/tasks/celery_app.py
"""
Celery application for the Jayple dispatch engine.

Redis is both broker and result backend. Assignment timeouts go to the
``dispatch`` queue, the weekly settlement run (from beat) to ``settlements``.
Tasks are acked late and never retried by the broker; every handler
re-reads booking or settlement state, so a duplicate delivery is a no-op.
"""

import logging
import os
from typing import Any, Type, cast

from celery import Celery, Task
from celery.signals import setup_logging

from jayple.core.config import settings
from jayple.core.constants import DISPATCH_QUEUE, SETTLEMENTS_QUEUE

logger = logging.getLogger(__name__)

TASK_MODULES = (
    "jayple.tasks.assignment_tasks",
    "jayple.tasks.settlement_tasks",
)


def create_celery_app() -> Celery:
    # CELERY_BROKER_URL wins over REDIS_URL, which wins over settings
    broker_url = os.getenv("CELERY_BROKER_URL") or os.getenv("REDIS_URL") or settings.redis_url
    app = Celery("jayple", broker=broker_url, backend=os.getenv("CELERY_RESULT_BACKEND") or broker_url)

    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        result_expires=3600,
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_soft_time_limit=60,
        task_time_limit=120,
        worker_prefetch_multiplier=1,
        worker_hijack_root_logger=False,
        imports=TASK_MODULES,
        task_routes={
            "jayple.tasks.assignment_tasks.*": {"queue": DISPATCH_QUEUE},
            "jayple.tasks.settlement_tasks.*": {"queue": SETTLEMENTS_QUEUE},
        },
    )

    from jayple.tasks.beat_schedule import get_beat_schedule

    app.conf.beat_schedule = get_beat_schedule()
    return app


@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


celery_app = create_celery_app()


class DispatchTask(Task):  # type: ignore[misc]
    """Logs the outcome of every task run; never auto-retries."""

    max_retries = 0

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logger.error("Task %s[%s] failed: %s (args=%s)", self.name, task_id, exc, args, exc_info=True)
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_success(self, retval: Any, task_id: str, args: Any, kwargs: Any) -> None:
        logger.info("Task %s[%s] finished: %s", self.name, task_id, retval)
        super().on_success(retval, task_id, args, kwargs)


celery_app.Task = cast(Type[Task], DispatchTask)

# backend/jayple/services/task_scheduler.py
"""
Delayed task scheduling for assignment timeouts.

Enqueueing is best-effort and always happens after the booking commit: a
broker outage is logged and the booking keeps its committed state.
"""

import logging
from typing import Optional, Protocol

from ..core.config import settings
from ..core.constants import ASSIGNMENT_TIMEOUT_TASK

logger = logging.getLogger(__name__)


class TaskScheduler(Protocol):
    def schedule_assignment_timeout(
        self, city_id: str, booking_id: str, freelancer_id: Optional[str]
    ) -> bool:
        """Return True when the task was handed to the broker."""
        ...


class CeleryTaskScheduler:
    def __init__(
        self,
        countdown_seconds: Optional[int] = None,
        deadline_seconds: Optional[int] = None,
    ):
        self.countdown_seconds = countdown_seconds or settings.assignment_timeout_seconds
        self.deadline_seconds = deadline_seconds or settings.assignment_task_deadline_seconds

    def schedule_assignment_timeout(
        self, city_id: str, booking_id: str, freelancer_id: Optional[str]
    ) -> bool:
        from ..tasks.enqueue import enqueue_task

        try:
            enqueue_task(
                ASSIGNMENT_TIMEOUT_TASK,
                kwargs={
                    "city_id": city_id,
                    "booking_id": booking_id,
                    "freelancer_id": freelancer_id,
                },
                countdown=self.countdown_seconds,
                # Delivery deadline, counted from publish; later deliveries are discarded
                expires=self.deadline_seconds,
                retry=False,
            )
        except Exception as exc:
            logger.error(
                "Failed to enqueue assignment timeout",
                exc_info=True,
                extra={"booking_id": booking_id, "city_id": city_id, "error": str(exc)},
            )
            return False
        return True

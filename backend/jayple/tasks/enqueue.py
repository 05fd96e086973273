"""
Centralized task enqueue helper.

Always use enqueue_task() instead of task.delay() or task.apply_async() so
tasks are looked up by registered name and callers never import task modules.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from celery import current_app

logger = logging.getLogger(__name__)


def enqueue_task(
    task_name: str,
    args: Optional[Tuple[Any, ...]] = None,
    kwargs: Optional[Dict[str, Any]] = None,
    **options: Any,
) -> Any:
    """
    Enqueue a Celery task by name.

    Args:
        task_name: Fully qualified task name
        args: Positional arguments for the task
        kwargs: Keyword arguments for the task
        **options: Additional Celery apply_async options (countdown, expires, retry...)

    Returns:
        AsyncResult from Celery
    """
    # Importing the package registers every task on current_app
    import jayple.tasks  # noqa: F401

    task = current_app.tasks[task_name]
    logger.debug("Enqueueing task", extra={"task_name": task_name, "options": options})
    return task.apply_async(args=args or (), kwargs=kwargs or {}, **options)

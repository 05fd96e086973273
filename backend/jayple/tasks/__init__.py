# backend/jayple/tasks/__init__.py
"""Celery tasks for the Jayple dispatch engine."""

from .celery_app import celery_app

# Register task modules on import so enqueue_task can resolve them by name
from . import assignment_tasks, settlement_tasks  # noqa: E402,F401

__all__ = ["celery_app"]

# backend/jayple/tasks/settlement_tasks.py
"""Weekly settlement batch, triggered by beat."""

import logging
from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

from jayple.core.constants import WEEKLY_SETTLEMENT_TASK
from jayple.database import SessionLocal
from jayple.services.dispatch import DispatchEngine
from jayple.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def process_weekly_settlements(
    session_factory: Callable[[], Session] = SessionLocal,
    engine_factory: Callable[[Session], DispatchEngine] = DispatchEngine,
) -> Dict[str, Any]:
    db = session_factory()
    try:
        summary = engine_factory(db).settlements.run_weekly_settlements()
        return summary.to_dict()
    finally:
        db.close()


@celery_app.task(name=WEEKLY_SETTLEMENT_TASK, max_retries=0)
def run_weekly_settlements() -> Dict[str, Any]:
    result = process_weekly_settlements()
    logger.info("Weekly settlements finished", extra={"summary": result})
    return result

# backend/jayple/tasks/assignment_tasks.py
"""
Assignment timeout task.

Delivered once, ~30s after a freelancer was offered a HOME booking. The
handler re-reads the booking and only acts if the same offer is still
pending, so late or duplicate deliveries are harmless. Errors are logged;
there is no caller to report them to and the booking keeps its last
committed state.
"""

import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from jayple.core.constants import ASSIGNMENT_TIMEOUT_TASK
from jayple.database import SessionLocal
from jayple.monitoring.prometheus_metrics import prometheus_metrics
from jayple.services.dispatch import DispatchEngine
from jayple.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def process_assignment_timeout(
    city_id: str,
    booking_id: str,
    freelancer_id: Optional[str] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    engine_factory: Callable[[Session], DispatchEngine] = DispatchEngine,
) -> Dict[str, Any]:
    db = session_factory()
    try:
        engine = engine_factory(db)
        outcome = engine.assignment.handle_assignment_timeout(city_id, booking_id, freelancer_id)
        booking = outcome.booking
        return {
            "bookingId": booking_id,
            "noop": outcome.noop,
            "reassigned": outcome.assigned,
            "freelancerId": outcome.freelancer_id,
            "failureReason": outcome.failure_reason,
            "status": booking.status if booking is not None else None,
        }
    except Exception as exc:
        prometheus_metrics.record_assignment_timeout("error")
        logger.error(
            "Assignment timeout handling failed",
            exc_info=True,
            extra={"booking_id": booking_id, "city_id": city_id, "error": str(exc)},
        )
        return {"bookingId": booking_id, "error": str(exc)}
    finally:
        db.close()


@celery_app.task(name=ASSIGNMENT_TIMEOUT_TASK, max_retries=0, ignore_result=True)
def check_assignment_timeout(
    city_id: str, booking_id: str, freelancer_id: Optional[str] = None
) -> Dict[str, Any]:
    return process_assignment_timeout(city_id, booking_id, freelancer_id)

"""
Optimistic transaction runner.

The body passed to run_in_transaction must only touch the session: it is
re-executed from scratch whenever a concurrent writer wins the race, so any
external side effect (task enqueue, notifications) belongs after the call.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from jayple.core.config import settings
from jayple.core.exceptions import InternalException
from jayple.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATEs that mean "someone else committed first, try again"
_CONFLICT_SQLSTATES = {"40001", "40P01"}
_UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_VIOLATION_SNIPPETS = (
    "unique constraint failed",
    "duplicate key value violates unique constraint",
)
_CONFLICT_SNIPPETS = (
    "could not serialize access",
    "deadlock detected",
    "database is locked",
)


def _sqlstate(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_conflict_error(exc: BaseException) -> bool:
    """
    Return True for errors that indicate a lost optimistic race.

    Only unique violations count among integrity errors: two writers racing
    for the same deterministic id. CHECK and foreign-key violations
    propagate on the first attempt.
    """
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, IntegrityError):
        if _sqlstate(exc) == _UNIQUE_VIOLATION_SQLSTATE:
            return True
        message = str(exc).lower()
        return any(snippet in message for snippet in _UNIQUE_VIOLATION_SNIPPETS)
    if isinstance(exc, OperationalError):
        pgcode = _sqlstate(exc)
        if pgcode in _CONFLICT_SQLSTATES:
            return True
        message = str(exc).lower()
        return any(snippet in message for snippet in _CONFLICT_SNIPPETS)
    return False


def _retry_delay(attempt: int) -> float:
    base = 0.02 * (2 ** (attempt - 1))
    return base + random.uniform(0, 0.01 * attempt)


def run_in_transaction(
    db: Session,
    op_name: str,
    fn: Callable[[Session], T],
    *,
    max_attempts: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``fn(db)`` and commit, retrying the whole body on write conflicts.

    Domain exceptions raised by ``fn`` roll back and propagate unchanged.
    After ``max_attempts`` conflicting attempts an InternalException is raised.
    """
    attempts_allowed = max_attempts or settings.transaction_max_attempts
    attempt = 1
    while True:
        try:
            result = fn(db)
            db.commit()
            return result
        except Exception as exc:
            db.rollback()
            if not is_conflict_error(exc):
                raise
            prometheus_metrics.record_transaction_retry(op_name)
            if attempt >= attempts_allowed:
                logger.error(
                    "Transaction retries exhausted",
                    extra={"op": op_name, "attempts": attempt, "error": str(exc)},
                )
                raise InternalException(
                    f"{op_name} could not be committed after {attempt} attempts",
                    details={"operation": op_name},
                ) from exc
            delay = _retry_delay(attempt)
            logger.warning(
                "Transaction conflict detected, retrying",
                extra={
                    "event": "txn_retry",
                    "op": op_name,
                    "attempt": attempt,
                    "delay": delay,
                    "error": str(exc),
                },
            )
            sleep(delay)
            attempt += 1


__all__ = ["is_conflict_error", "run_in_transaction"]

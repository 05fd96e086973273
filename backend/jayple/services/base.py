# backend/jayple/services/base.py
"""
Base Service Pattern for the Jayple dispatch engine.

Provides common functionality for all service classes including:
- Optimistic transaction management
- Logging
- Performance monitoring
"""

from datetime import datetime
from functools import wraps
import logging
import time
from typing import Any, Callable, Optional, TypeVar, cast

from sqlalchemy.orm import Session

from ..core.clock import Clock, SystemClock
from ..database.transaction import run_in_transaction
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])


class BaseService:
    """
    Base class for all service layer components.

    Services receive the session and clock from their owner; they commit only
    through run_transaction so every mutating operation is retried as a whole
    on a write conflict.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock: Clock = clock or SystemClock()
        self.logger = logging.getLogger(self.__class__.__name__)

    def now(self) -> datetime:
        return self.clock.now()

    def run_transaction(self, operation: str, fn: Callable[[Session], T]) -> T:
        """
        Execute ``fn`` as one optimistic transaction.

        ``fn`` may run more than once; it must not enqueue tasks or call
        anything outside the session.
        """
        return run_in_transaction(self.db, f"{self.__class__.__name__}.{operation}", fn)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, data):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                start_time = time.time()
                success = False
                error_type = None

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - start_time

                    # Only log if it's actually slow
                    if elapsed > 1.0:
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

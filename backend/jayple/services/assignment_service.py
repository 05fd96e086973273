# backend/jayple/services/assignment_service.py
"""
Freelancer matching, reassignment and assignment timeouts for HOME bookings.

Candidates are ranked by tier (gold > silver > bronze > unknown) and, within
a tier, by lastActiveAt ascending: the freelancer idle the longest wins.
Each failed offer (rejection or timeout) is recorded in
Booking.assignment_attempts; a booking fails once three offers have failed
or nobody eligible is left.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import (
    TIER_RANK,
    AssignmentTrigger,
    BookingStatus,
    FailureReason,
    StatusActor,
)
from ..models.booking import Booking
from ..models.user import Freelancer
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_events import BookingEventWriter
from .task_scheduler import TaskScheduler

logger = logging.getLogger(__name__)

# Never-active freelancers sort as the longest idle
_NEVER_ACTIVE = datetime.min.replace(tzinfo=timezone.utc)


def rank_key(freelancer: Freelancer) -> Tuple[int, datetime, str]:
    """Sort key: higher tier first, then oldest lastActiveAt, then id for stability."""
    return (
        -TIER_RANK.get(freelancer.priority_tier or "", 0),
        freelancer.last_active_at or _NEVER_ACTIVE,
        freelancer.id,
    )


@dataclass
class AssignmentOutcome:
    booking: Optional[Booking]
    assigned: bool
    freelancer_id: Optional[str] = None
    failure_reason: Optional[str] = None
    noop: bool = False


class AssignmentService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        scheduler: Optional[TaskScheduler] = None,
        max_attempts: Optional[int] = None,
    ):
        super().__init__(db, clock)
        self.scheduler = scheduler
        self.max_attempts = max_attempts or settings.max_assignment_attempts
        self.bookings = RepositoryFactory.create_booking_repository(db)
        self.freelancers = RepositoryFactory.create_freelancer_repository(db)
        self.blocked_accounts = RepositoryFactory.create_blocked_account_repository(db)
        self.events = BookingEventWriter(self.bookings, self.clock)

    def find_best_freelancer(
        self, city_id: str, category: str, excluded: Iterable[str] = ()
    ) -> Optional[Freelancer]:
        excluded_ids: Set[str] = set(excluded)
        candidates: List[Freelancer] = [
            freelancer
            for freelancer in self.freelancers.list_available_in_city(city_id, category)
            if freelancer.id not in excluded_ids
            and not self.blocked_accounts.is_blocked(freelancer.id)
        ]
        if not candidates:
            return None
        return min(candidates, key=rank_key)

    def assign_initial(self, booking: Booking, actor_id: Optional[str] = None) -> AssignmentOutcome:
        """CREATED -> ASSIGNED, or -> FAILED(NO_FREELANCER_AVAILABLE)."""
        candidate = self.find_best_freelancer(booking.city_id, booking.service_category)
        if candidate is None:
            return self._fail(booking, FailureReason.NO_FREELANCER_AVAILABLE, actor_id=actor_id)

        booking.freelancer_id = candidate.id
        self.events.transition(
            booking,
            BookingStatus.ASSIGNED.value,
            actor=StatusActor.SYSTEM.value,
            metadata={"freelancerId": candidate.id, "trigger": AssignmentTrigger.INITIAL.value},
        )
        prometheus_metrics.record_assignment("assigned")
        return AssignmentOutcome(booking=booking, assigned=True, freelancer_id=candidate.id)

    def reassign(
        self,
        booking: Booking,
        trigger: AssignmentTrigger,
        *,
        actor: str,
        actor_id: Optional[str] = None,
    ) -> AssignmentOutcome:
        """
        Record the current freelancer's failed offer and hand the booking on.

        The failed offer counts toward the cap: once max_attempts offers have
        failed the booking fails with MAX_ASSIGNMENT_ATTEMPTS.
        """
        now = self.now()
        previous_id = booking.freelancer_id
        attempts = list(booking.assignment_attempts or [])
        if previous_id and len(attempts) < self.max_attempts:
            attempts.append(
                {
                    "freelancerId": previous_id,
                    "assignedAt": booking.updated_at.isoformat() if booking.updated_at else None,
                    "failedAt": now.isoformat(),
                }
            )
            booking.assignment_attempts = attempts

        if len(attempts) >= self.max_attempts:
            return self._fail(
                booking,
                FailureReason.MAX_ASSIGNMENT_ATTEMPTS,
                actor=actor,
                actor_id=actor_id,
                trigger=trigger,
            )

        excluded = {attempt["freelancerId"] for attempt in attempts}
        if previous_id:
            excluded.add(previous_id)
        candidate = self.find_best_freelancer(
            booking.city_id, booking.service_category, excluded=excluded
        )
        if candidate is None:
            return self._fail(
                booking,
                FailureReason.NO_FREELANCER_AVAILABLE,
                actor=actor,
                actor_id=actor_id,
                trigger=trigger,
            )

        attempt_number = len(attempts)
        self.events.transition(
            booking,
            BookingStatus.REASSIGNED.value,
            actor=actor,
            actor_id=actor_id,
            metadata={
                "attempt": attempt_number,
                "trigger": trigger.value,
                "previousFreelancerId": previous_id,
            },
        )
        booking.freelancer_id = candidate.id
        self.events.transition(
            booking,
            BookingStatus.ASSIGNED.value,
            actor=StatusActor.SYSTEM.value,
            metadata={
                "attempt": attempt_number,
                "trigger": trigger.value,
                "freelancerId": candidate.id,
            },
        )
        prometheus_metrics.record_assignment("reassigned")
        logger.info(
            "Booking reassigned",
            extra={
                "booking_id": booking.id,
                "from_freelancer": previous_id,
                "to_freelancer": candidate.id,
                "attempt": attempt_number,
                "trigger": trigger.value,
            },
        )
        return AssignmentOutcome(booking=booking, assigned=True, freelancer_id=candidate.id)

    def _fail(
        self,
        booking: Booking,
        reason: FailureReason,
        *,
        actor: str = StatusActor.SYSTEM.value,
        actor_id: Optional[str] = None,
        trigger: Optional[AssignmentTrigger] = None,
    ) -> AssignmentOutcome:
        booking.failure_reason = reason.value
        metadata = {"failureReason": reason.value}
        if trigger is not None:
            metadata["trigger"] = trigger.value
        self.events.transition(
            booking, BookingStatus.FAILED.value, actor=actor, actor_id=actor_id, metadata=metadata
        )
        prometheus_metrics.record_assignment("failed")
        logger.info(
            "Booking assignment failed",
            extra={"booking_id": booking.id, "reason": reason.value},
        )
        return AssignmentOutcome(booking=booking, assigned=False, failure_reason=reason.value)

    def schedule_timeout(self, booking: Booking) -> bool:
        """Arm the timeout for the booking's current offer (after commit only)."""
        if self.scheduler is None:
            logger.warning(
                "No task scheduler configured; assignment timeout not armed",
                extra={"booking_id": booking.id},
            )
            return False
        return self.scheduler.schedule_assignment_timeout(
            booking.city_id, booking.id, booking.freelancer_id
        )

    @BaseService.measure_operation("handle_assignment_timeout")
    def handle_assignment_timeout(
        self, city_id: str, booking_id: str, freelancer_id: Optional[str] = None
    ) -> AssignmentOutcome:
        """
        Timeout task body.

        Delivery is at-least-once and may race a provider response, so the
        booking state is re-checked: anything other than ASSIGNED to the same
        freelancer is a no-op.
        """

        def _apply(db: Session) -> Optional[AssignmentOutcome]:
            booking = self.bookings.get_in_city(city_id, booking_id)
            if booking is None or booking.status != BookingStatus.ASSIGNED.value:
                return None
            if freelancer_id is not None and booking.freelancer_id != freelancer_id:
                return None
            self.events.record_timeout(booking, booking.freelancer_id)
            return self.reassign(
                booking, AssignmentTrigger.TIMEOUT, actor=StatusActor.SYSTEM.value
            )

        outcome = self.run_transaction("handle_assignment_timeout", _apply)
        if outcome is None:
            prometheus_metrics.record_assignment_timeout("noop")
            logger.info(
                "Assignment timeout is stale, nothing to do",
                extra={"booking_id": booking_id, "freelancer_id": freelancer_id},
            )
            booking = self.bookings.get_in_city(city_id, booking_id)
            return AssignmentOutcome(booking=booking, assigned=False, noop=True)

        if outcome.assigned:
            prometheus_metrics.record_assignment_timeout("reassigned")
            if outcome.booking is not None:
                self.schedule_timeout(outcome.booking)
        else:
            prometheus_metrics.record_assignment_timeout("failed")
        return outcome

# backend/jayple/services/booking_events.py
"""
Status and payment writes for a booking.

All writes to Booking.status and Booking.payment_status go through
BookingEventWriter so each one is validated against the transition tables
and recorded as an event in the same transaction.
"""

from typing import Any, Dict, Optional

from ..core.clock import Clock
from ..core.enums import TIMEOUT_MARKER, StatusActor, StatusEventType
from ..models.booking import Booking, BookingStatusEvent
from ..repositories.booking_repository import BookingRepository
from .state_machine import ensure_payment_transition, ensure_transition


class BookingEventWriter:
    def __init__(self, repository: BookingRepository, clock: Clock):
        self.repository = repository
        self.clock = clock

    def transition(
        self,
        booking: Booking,
        to_status: str,
        *,
        actor: str,
        actor_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> BookingStatusEvent:
        from_status = booking.status
        ensure_transition(from_status, to_status)
        now = self.clock.now()
        booking.status = to_status
        booking.updated_at = now
        return self.repository.add_event(
            booking,
            event_type=StatusEventType.STATUS.value,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            actor_id=actor_id,
            metadata=metadata,
            created_at=now,
        )

    def record_timeout(self, booking: Booking, freelancer_id: Optional[str]) -> BookingStatusEvent:
        """ASSIGNED -> TIMEOUT audit marker; the booking status is left alone."""
        return self.repository.add_event(
            booking,
            event_type=StatusEventType.AUDIT.value,
            from_status=booking.status,
            to_status=TIMEOUT_MARKER,
            actor=StatusActor.SYSTEM.value,
            actor_id=None,
            metadata={"freelancerId": freelancer_id},
            created_at=self.clock.now(),
        )

    def payment_transition(
        self,
        booking: Booking,
        to_status: str,
        *,
        actor: str,
        actor_id: Optional[str] = None,
        provider_ref: Optional[str] = None,
    ) -> BookingStatusEvent:
        from_status = booking.payment_status
        ensure_payment_transition(from_status, to_status)
        now = self.clock.now()
        booking.payment_status = to_status
        if provider_ref is not None:
            booking.payment_provider_ref = provider_ref
        booking.updated_at = now
        return self.repository.add_event(
            booking,
            event_type=StatusEventType.PAYMENT.value,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            actor_id=actor_id,
            metadata={"providerRef": provider_ref} if provider_ref else None,
            created_at=now,
        )

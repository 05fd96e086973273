# backend/jayple/services/payment_service.py
"""
Payment sub-state machine embedded in a booking.

    NOT_REQUIRED                      (offline, terminal)
    PENDING -> AUTHORIZED -> CAPTURED -> REFUNDED
                          -> FAILED

Capture and refund also run inside booking completion and cancellation;
those paths call the *_in_transaction helpers directly.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.caller import Caller
from ..core.clock import Clock
from ..core.enums import BookingStatus, FailureReason, PaymentMode, PaymentStatus
from ..core.exceptions import (
    FailedPreconditionException,
    NotFoundException,
    PermissionDeniedException,
)
from ..models.booking import Booking
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .blocking_service import BlockingService
from .booking_events import BookingEventWriter
from .ledger_service import LedgerService, provider_user_type
from .payment_gateway import MockPaymentGateway, PaymentGateway

logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    def __init__(
        self,
        db: Session,
        ledger: LedgerService,
        blocking: BlockingService,
        clock: Optional[Clock] = None,
        gateway: Optional[PaymentGateway] = None,
    ):
        super().__init__(db, clock)
        self.ledger = ledger
        self.blocking = blocking
        self.gateway: PaymentGateway = gateway or MockPaymentGateway()
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.events = BookingEventWriter(self.repository, self.clock)

    def _load_for_payer(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        booking = self.repository.get_in_city(city_id, booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"bookingId": booking_id})
        if not caller.is_operator and booking.customer_id != caller.user_id:
            raise PermissionDeniedException("Only the booking's customer can manage its payment")
        return booking

    @BaseService.measure_operation("authorize_payment")
    def authorize_payment(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        def _apply(db: Session) -> Booking:
            booking = self._load_for_payer(caller, city_id, booking_id)
            if booking.status != BookingStatus.CONFIRMED.value:
                raise FailedPreconditionException("Booking must be CONFIRMED to authorize payment")
            if booking.payment_mode != PaymentMode.ONLINE.value:
                raise FailedPreconditionException("Offline bookings take no online payment")
            if booking.payment_status != PaymentStatus.PENDING.value:
                raise FailedPreconditionException(
                    f"Payment is {booking.payment_status}, expected PENDING"
                )
            self.events.payment_transition(
                booking,
                PaymentStatus.AUTHORIZED.value,
                actor=caller.role,
                actor_id=caller.user_id,
                provider_ref=self.gateway.authorize(booking),
            )
            return booking

        booking = self.run_transaction("authorize_payment", _apply)
        self.log_operation("authorize_payment", booking_id=booking_id)
        return booking

    @BaseService.measure_operation("fail_payment")
    def fail_payment(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        """AUTHORIZED -> FAILED, and the booking with it (PAYMENT_FAILED)."""

        def _apply(db: Session) -> Booking:
            booking = self._load_for_payer(caller, city_id, booking_id)
            if booking.status not in (
                BookingStatus.CONFIRMED.value,
                BookingStatus.IN_PROGRESS.value,
            ):
                raise FailedPreconditionException(
                    f"Cannot fail payment of a {booking.status} booking"
                )
            if booking.payment_mode == PaymentMode.OFFLINE.value:
                raise FailedPreconditionException("Offline bookings take no online payment")
            if booking.payment_status != PaymentStatus.AUTHORIZED.value:
                raise FailedPreconditionException(
                    f"Payment is {booking.payment_status}, expected AUTHORIZED"
                )
            self.events.payment_transition(
                booking, PaymentStatus.FAILED.value, actor=caller.role, actor_id=caller.user_id
            )
            booking.failure_reason = FailureReason.PAYMENT_FAILED.value
            self.events.transition(
                booking,
                BookingStatus.FAILED.value,
                actor=caller.role,
                actor_id=caller.user_id,
                metadata={"failureReason": FailureReason.PAYMENT_FAILED.value},
            )
            return booking

        booking = self.run_transaction("fail_payment", _apply)
        self.log_operation("fail_payment", booking_id=booking_id)
        return booking

    @BaseService.measure_operation("refund_payment")
    def refund_payment(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        def _apply(db: Session) -> Booking:
            booking = self._load_for_payer(caller, city_id, booking_id)
            self.refund_in_transaction(booking, actor=caller.role, actor_id=caller.user_id)
            return booking

        booking = self.run_transaction("refund_payment", _apply)
        self.log_operation("refund_payment", booking_id=booking_id)
        return booking

    def capture_in_transaction(
        self, booking: Booking, *, actor: str, actor_id: Optional[str]
    ) -> bool:
        """Capture an AUTHORIZED payment; anything else is left as is."""
        if booking.payment_status != PaymentStatus.AUTHORIZED.value:
            return False
        self.events.payment_transition(
            booking,
            PaymentStatus.CAPTURED.value,
            actor=actor,
            actor_id=actor_id,
            provider_ref=self.gateway.capture(booking),
        )
        return True

    def refund_in_transaction(
        self, booking: Booking, *, actor: str, actor_id: Optional[str]
    ) -> None:
        """Full refund of a captured online payment, debited from the provider."""
        if not booking.is_captured:
            raise FailedPreconditionException(
                "Only captured online payments can be refunded",
                details={"mode": booking.payment_mode, "status": booking.payment_status},
            )
        self.ledger.post_booking_refund(booking)
        if booking.provider_id:
            self.blocking.check_outstanding_balance(
                booking.provider_id, provider_user_type(booking)
            )
        self.events.payment_transition(
            booking,
            PaymentStatus.REFUNDED.value,
            actor=actor,
            actor_id=actor_id,
            provider_ref=self.gateway.refund(booking),
        )

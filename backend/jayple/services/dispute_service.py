# backend/jayple/services/dispute_service.py
"""Disputes on completed bookings, resolved by an operator."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.caller import Caller
from ..core.clock import Clock
from ..core.enums import BookingStatus, DisputeDecision, DisputeStatus
from ..core.exceptions import (
    FailedPreconditionException,
    InvalidArgumentException,
    NotFoundException,
    PermissionDeniedException,
)
from ..models.dispute import Dispute
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .payment_service import PaymentService

logger = logging.getLogger(__name__)


def dispute_id_for(booking_id: str) -> str:
    return f"{booking_id}_DISPUTE"


class DisputeService(BaseService):
    def __init__(self, db: Session, payment: PaymentService, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.payment = payment
        self.repository = RepositoryFactory.create_dispute_repository(db)
        self.bookings = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("raise_dispute")
    def raise_dispute(self, caller: Caller, city_id: str, booking_id: str, reason: str) -> Dispute:
        if not reason or not reason.strip():
            raise InvalidArgumentException("reason is required")

        def _apply(db: Session) -> Dispute:
            booking = self.bookings.get_in_city(city_id, booking_id)
            if booking is None:
                raise NotFoundException("Booking not found", details={"bookingId": booking_id})
            if caller.user_id not in (booking.customer_id, booking.provider_id):
                raise PermissionDeniedException("Only a party to the booking can dispute it")
            existing = self.repository.get_by_id(dispute_id_for(booking.id))
            if existing is not None:
                return existing
            if booking.status != BookingStatus.COMPLETED.value:
                raise FailedPreconditionException("Only completed bookings can be disputed")
            return self.repository.create(
                id=dispute_id_for(booking.id),
                booking_id=booking.id,
                city_id=city_id,
                raised_by=caller.user_id,
                raised_by_role=caller.role,
                reason=reason.strip(),
                status=DisputeStatus.OPEN.value,
                created_at=self.now(),
            )

        dispute = self.run_transaction("raise_dispute", _apply)
        self.log_operation("raise_dispute", dispute_id=dispute.id, booking_id=booking_id)
        return dispute

    @BaseService.measure_operation("resolve_dispute")
    def resolve_dispute(self, caller: Caller, dispute_id: str, decision: str) -> Dispute:
        """
        ``customer`` refunds a captured online payment through the normal
        refund path; ``provider`` keeps the money where it is.
        """
        if not caller.is_operator:
            raise PermissionDeniedException("Only operators can resolve disputes")
        if decision not in (DisputeDecision.CUSTOMER.value, DisputeDecision.PROVIDER.value):
            raise InvalidArgumentException(f"Unknown decision {decision}")

        def _apply(db: Session) -> Dispute:
            dispute = self.repository.get_by_id(dispute_id)
            if dispute is None:
                raise NotFoundException("Dispute not found", details={"disputeId": dispute_id})
            if dispute.status != DisputeStatus.OPEN.value:
                raise FailedPreconditionException("Dispute is already resolved")

            if decision == DisputeDecision.CUSTOMER.value:
                booking = self.bookings.get_in_city(dispute.city_id, dispute.booking_id)
                if booking is not None and booking.is_captured:
                    self.payment.refund_in_transaction(
                        booking, actor=caller.role, actor_id=caller.user_id
                    )

            dispute.status = DisputeStatus.RESOLVED.value
            dispute.resolution = decision
            dispute.resolved_by = caller.user_id
            dispute.resolved_at = self.now()
            self.repository.flush()
            return dispute

        dispute = self.run_transaction("resolve_dispute", _apply)
        self.log_operation("resolve_dispute", dispute_id=dispute_id, decision=decision)
        return dispute

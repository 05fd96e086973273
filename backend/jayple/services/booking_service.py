# backend/jayple/services/booking_service.py
"""
Booking Service for the Jayple dispatch engine.

Owns the booking lifecycle:

    CREATED -> ASSIGNED (HOME) -> CONFIRMED -> IN_PROGRESS -> COMPLETED
    side branches REJECTED (IN_SHOP), FAILED, CANCELLED

Each public operation is a single optimistic transaction. Timeout tasks are
scheduled only after the transaction that produced the ASSIGNED state has
committed.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.caller import Caller
from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import (
    AssignmentTrigger,
    BookingStatus,
    BookingType,
    PaymentMode,
    PaymentStatus,
    ProviderAction,
    RoleName,
    StatusActor,
)
from ..core.exceptions import (
    FailedPreconditionException,
    InvalidArgumentException,
    NotFoundException,
    PermissionDeniedException,
    ResourceExhaustedException,
)
from ..core.ulid_helper import generate_ulid
from ..models.booking import Booking
from ..repositories.factory import RepositoryFactory
from .assignment_service import AssignmentService
from .base import BaseService
from .blocking_service import BlockingService
from .booking_events import BookingEventWriter
from .ledger_service import LedgerService, provider_user_type
from .payment_service import PaymentService

logger = logging.getLogger(__name__)


@dataclass
class CreateBookingResult:
    booking: Booking
    already_exists: bool


@dataclass
class ProviderResponseResult:
    booking: Booking
    action: str
    reassigned: bool = False


class BookingService(BaseService):
    """Booking state machine on top of the assignment, payment and ledger services."""

    def __init__(
        self,
        db: Session,
        assignment: AssignmentService,
        payment: PaymentService,
        ledger: LedgerService,
        blocking: BlockingService,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock)
        self.assignment = assignment
        self.payment = payment
        self.ledger = ledger
        self.blocking = blocking
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.catalog = RepositoryFactory.create_service_catalog_repository(db)
        self.events = BookingEventWriter(self.repository, self.clock)

    # Helpers

    def _get_booking(self, city_id: str, booking_id: str) -> Booking:
        booking = self.repository.get_in_city(city_id, booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", details={"cityId": city_id, "bookingId": booking_id}
            )
        return booking

    def _ensure_provider(self, caller: Caller, booking: Booking) -> None:
        if not caller.is_provider or booking.provider_id != caller.user_id:
            raise PermissionDeniedException("Only the assigned provider can do this")

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        caller: Caller,
        *,
        city_id: str,
        service_id: str,
        booking_type: str,
        scheduled_at: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
    ) -> CreateBookingResult:
        """
        Create a booking and, for HOME, offer it to the best freelancer.

        A booking that finds no freelancer is persisted as FAILED and the
        call then raises ResourceExhaustedException.
        """
        if not caller.is_customer:
            raise PermissionDeniedException("Only customers can create bookings")
        if booking_type not in (BookingType.IN_SHOP.value, BookingType.HOME.value):
            raise InvalidArgumentException(f"Unknown booking type {booking_type}")

        def _apply(db: Session) -> CreateBookingResult:
            service = self.catalog.get_active_in_city(city_id, service_id)
            if service is None:
                raise NotFoundException(
                    "Service not found", details={"cityId": city_id, "serviceId": service_id}
                )
            if idempotency_key:
                existing = self.repository.get_by_idempotency_key(city_id, idempotency_key)
                if existing is not None:
                    return CreateBookingResult(booking=existing, already_exists=True)

            is_home = booking_type == BookingType.HOME.value
            if not is_home and not service.vendor_id:
                raise FailedPreconditionException(
                    "In-shop service has no owning vendor", details={"serviceId": service_id}
                )

            now = self.now()
            booking = Booking(
                id=generate_ulid(),
                city_id=city_id,
                idempotency_key=idempotency_key,
                type=booking_type,
                service_id=service.id,
                service_category=service.category,
                customer_id=caller.user_id,
                vendor_id=None if is_home else service.vendor_id,
                status=None,
                assignment_attempts=[],
                payment_mode=PaymentMode.ONLINE.value if is_home else PaymentMode.OFFLINE.value,
                payment_status=(
                    PaymentStatus.PENDING.value if is_home else PaymentStatus.NOT_REQUIRED.value
                ),
                payment_amount=service.price,
                payment_currency=settings.currency,
                scheduled_at=scheduled_at,
                created_at=now,
                updated_at=now,
            )
            self.events.transition(
                booking,
                BookingStatus.CREATED.value,
                actor=StatusActor.CUSTOMER.value,
                actor_id=caller.user_id,
            )
            db.add(booking)
            if is_home:
                self.assignment.assign_initial(booking)
            self.repository.flush()
            return CreateBookingResult(booking=booking, already_exists=False)

        result = self.run_transaction("create_booking", _apply)
        booking = result.booking
        if result.already_exists:
            self.log_operation("create_booking_idempotent_hit", booking_id=booking.id)
            return result

        self.log_operation(
            "create_booking", booking_id=booking.id, city_id=city_id, status=booking.status
        )
        if booking.status == BookingStatus.ASSIGNED.value:
            self.assignment.schedule_timeout(booking)
        elif booking.status == BookingStatus.FAILED.value:
            raise ResourceExhaustedException(
                "No freelancer available for this booking",
                details={"bookingId": booking.id, "failureReason": booking.failure_reason},
            )
        return result

    # Provider responses

    @BaseService.measure_operation("vendor_respond")
    def respond_as_vendor(
        self, caller: Caller, city_id: str, booking_id: str, action: str
    ) -> ProviderResponseResult:
        if caller.role != RoleName.VENDOR.value:
            raise PermissionDeniedException("Only vendors can respond to in-shop bookings")
        self._validate_action(action)

        def _apply(db: Session) -> ProviderResponseResult:
            self.blocking.enforce_block(caller.user_id)
            booking = self._get_booking(city_id, booking_id)
            if booking.type != BookingType.IN_SHOP.value:
                raise FailedPreconditionException("Vendors only respond to in-shop bookings")
            if booking.status != BookingStatus.CREATED.value:
                raise FailedPreconditionException(
                    f"Booking is {booking.status}, expected CREATED"
                )
            if booking.vendor_id != caller.user_id:
                raise PermissionDeniedException("Booking belongs to another vendor")

            target = (
                BookingStatus.CONFIRMED.value
                if action == ProviderAction.ACCEPT.value
                else BookingStatus.REJECTED.value
            )
            self.events.transition(
                booking, target, actor=StatusActor.VENDOR.value, actor_id=caller.user_id
            )
            return ProviderResponseResult(booking=booking, action=action)

        result = self.run_transaction("vendor_respond", _apply)
        self.log_operation(
            "vendor_respond", booking_id=booking_id, action=action, status=result.booking.status
        )
        return result

    @BaseService.measure_operation("freelancer_respond")
    def respond_as_freelancer(
        self, caller: Caller, city_id: str, booking_id: str, action: str
    ) -> ProviderResponseResult:
        """
        ACCEPT confirms; REJECT hands the booking to the next freelancer.

        When no replacement is left the booking is persisted as FAILED and the
        call then raises ResourceExhaustedException.
        """
        if caller.role != RoleName.FREELANCER.value:
            raise PermissionDeniedException("Only freelancers can respond to home bookings")
        self._validate_action(action)

        def _apply(db: Session) -> ProviderResponseResult:
            self.blocking.enforce_block(caller.user_id)
            booking = self._get_booking(city_id, booking_id)
            if booking.type != BookingType.HOME.value:
                raise FailedPreconditionException("Freelancers only respond to home bookings")
            if booking.status != BookingStatus.ASSIGNED.value:
                raise FailedPreconditionException(
                    f"Booking is {booking.status}, expected ASSIGNED"
                )
            if booking.freelancer_id != caller.user_id:
                raise PermissionDeniedException("Booking is assigned to another freelancer")

            if action == ProviderAction.ACCEPT.value:
                self.events.transition(
                    booking,
                    BookingStatus.CONFIRMED.value,
                    actor=StatusActor.FREELANCER.value,
                    actor_id=caller.user_id,
                )
                return ProviderResponseResult(booking=booking, action=action)

            outcome = self.assignment.reassign(
                booking,
                AssignmentTrigger.REJECTION,
                actor=StatusActor.FREELANCER.value,
                actor_id=caller.user_id,
            )
            return ProviderResponseResult(
                booking=booking, action=action, reassigned=outcome.assigned
            )

        result = self.run_transaction("freelancer_respond", _apply)
        self.log_operation(
            "freelancer_respond",
            booking_id=booking_id,
            action=action,
            status=result.booking.status,
        )
        if result.reassigned:
            self.assignment.schedule_timeout(result.booking)
        elif result.booking.status == BookingStatus.FAILED.value:
            # the FAILED row is already committed
            raise ResourceExhaustedException(
                "No freelancer left to reassign this booking",
                details={
                    "bookingId": result.booking.id,
                    "failureReason": result.booking.failure_reason,
                },
            )
        return result

    @staticmethod
    def _validate_action(action: str) -> None:
        if action not in (ProviderAction.ACCEPT.value, ProviderAction.REJECT.value):
            raise InvalidArgumentException(f"Unknown action {action}")

    # Service delivery

    @BaseService.measure_operation("start_booking")
    def start_booking(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        def _apply(db: Session) -> Booking:
            booking = self._get_booking(city_id, booking_id)
            self._ensure_provider(caller, booking)
            if booking.status != BookingStatus.CONFIRMED.value:
                raise FailedPreconditionException(
                    f"Booking is {booking.status}, expected CONFIRMED"
                )
            self.events.transition(
                booking, BookingStatus.IN_PROGRESS.value, actor=caller.role, actor_id=caller.user_id
            )
            return booking

        return self.run_transaction("start_booking", _apply)

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        """
        Complete the booking, post EARNING + COMMISSION, re-check the
        provider's block and capture an authorized payment, atomically.
        """

        def _apply(db: Session) -> Booking:
            booking = self._get_booking(city_id, booking_id)
            self._ensure_provider(caller, booking)
            if booking.status not in (
                BookingStatus.CONFIRMED.value,
                BookingStatus.IN_PROGRESS.value,
            ):
                raise FailedPreconditionException(
                    f"Booking is {booking.status}, expected CONFIRMED or IN_PROGRESS"
                )
            self.events.transition(
                booking, BookingStatus.COMPLETED.value, actor=caller.role, actor_id=caller.user_id
            )
            self.ledger.post_booking_earning(booking)
            self.blocking.check_outstanding_balance(
                caller.user_id, provider_user_type(booking)
            )
            self.payment.capture_in_transaction(
                booking, actor=StatusActor.SYSTEM.value, actor_id=None
            )
            return booking

        booking = self.run_transaction("complete_booking", _apply)
        self.log_operation("complete_booking", booking_id=booking_id)
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        """Cancel from any non-terminal-failure state; captured payments are refunded first."""

        def _apply(db: Session) -> Booking:
            booking = self._get_booking(city_id, booking_id)
            if not caller.is_customer or booking.customer_id != caller.user_id:
                raise PermissionDeniedException("Only the booking's customer can cancel it")
            if booking.status in (BookingStatus.FAILED.value, BookingStatus.CANCELLED.value):
                raise FailedPreconditionException(f"Booking is already {booking.status}")
            if booking.is_captured:
                self.payment.refund_in_transaction(
                    booking, actor=StatusActor.CUSTOMER.value, actor_id=caller.user_id
                )
            self.events.transition(
                booking,
                BookingStatus.CANCELLED.value,
                actor=StatusActor.CUSTOMER.value,
                actor_id=caller.user_id,
            )
            return booking

        booking = self.run_transaction("cancel_booking", _apply)
        self.log_operation("cancel_booking", booking_id=booking_id)
        return booking

    # Reads

    @BaseService.measure_operation("get_booking_by_id")
    def get_booking_by_id(self, caller: Caller, city_id: str, booking_id: str) -> Booking:
        booking = self.repository.get_in_city(city_id, booking_id, load_events=True)
        if booking is None:
            raise NotFoundException("Booking not found", details={"bookingId": booking_id})
        parties = {booking.customer_id, booking.freelancer_id, booking.vendor_id}
        if not caller.is_operator and caller.user_id not in parties:
            raise PermissionDeniedException("Not a party to this booking")
        return booking

    @BaseService.measure_operation("get_my_bookings")
    def get_my_bookings(self, caller: Caller, limit: int = 50) -> List[Booking]:
        if caller.is_customer:
            return self.repository.list_for_party(customer_id=caller.user_id, limit=limit)
        if caller.is_provider:
            return self.repository.list_for_party(provider_id=caller.user_id, limit=limit)
        return []

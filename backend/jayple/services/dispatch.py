# backend/jayple/services/dispatch.py
"""
DispatchEngine: one object per session grouping every service, wired to a
shared clock, task scheduler and payment gateway.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock, SystemClock
from .assignment_service import AssignmentService
from .blocking_service import BlockingService
from .booking_service import BookingService
from .dispute_service import DisputeService
from .ledger_service import LedgerService
from .payment_gateway import MockPaymentGateway, PaymentGateway
from .payment_service import PaymentService
from .settlement_service import SettlementService
from .task_scheduler import CeleryTaskScheduler, TaskScheduler


class DispatchEngine:
    def __init__(
        self,
        db: Session,
        *,
        clock: Optional[Clock] = None,
        scheduler: Optional[TaskScheduler] = None,
        gateway: Optional[PaymentGateway] = None,
    ):
        self.db = db
        self.clock: Clock = clock or SystemClock()
        self.scheduler: TaskScheduler = scheduler or CeleryTaskScheduler()
        self.gateway: PaymentGateway = gateway or MockPaymentGateway()

        self.ledger = LedgerService(db, self.clock)
        self.blocking = BlockingService(db, self.ledger, self.clock)
        self.payments = PaymentService(db, self.ledger, self.blocking, self.clock, self.gateway)
        self.assignment = AssignmentService(db, self.clock, self.scheduler)
        self.bookings = BookingService(
            db, self.assignment, self.payments, self.ledger, self.blocking, self.clock
        )
        self.settlements = SettlementService(db, self.ledger, self.clock)
        self.disputes = DisputeService(db, self.payments, self.clock)

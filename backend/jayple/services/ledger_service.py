# backend/jayple/services/ledger_service.py
"""
Provider ledger accounting.

Every posting method here runs inside the caller's transaction and is
idempotent by its deterministic ledger id:

    <bookingId>_EARNING / <bookingId>_COMMISSION   on completion
    <bookingId>_REFUND                            on refund
    <settlementId>_PAYOUT                         on a PAYABLE settlement
    debt_<reference>                              on a manual debt payment

Entries chain per user: balance_before of each new entry is the previous
entry's balance_after, and (sequence, created_at) strictly increase.
"""

from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import LedgerDirection, LedgerEntryType, PaymentMode, RoleName
from ..models.booking import Booking
from ..models.ledger import LedgerEntry
from ..models.settlement import Settlement
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
_TICK = timedelta(microseconds=1)


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def earning_ledger_id(booking_id: str) -> str:
    return f"{booking_id}_{LedgerEntryType.EARNING.value}"


def commission_ledger_id(booking_id: str) -> str:
    return f"{booking_id}_{LedgerEntryType.COMMISSION.value}"


def refund_ledger_id(booking_id: str) -> str:
    return f"{booking_id}_{LedgerEntryType.REFUND.value}"


def payout_ledger_id(settlement_id: str) -> str:
    return f"{settlement_id}_{LedgerEntryType.PAYOUT.value}"


def debt_payment_ledger_id(reference: str) -> str:
    return f"debt_{reference}"


def provider_user_type(booking: Booking) -> str:
    return RoleName.FREELANCER.value if booking.is_home else RoleName.VENDOR.value


class LedgerService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        commission_rate: Optional[Decimal] = None,
    ):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_ledger_repository(db)
        self.commission_rate = (
            commission_rate if commission_rate is not None else settings.commission_rate
        )

    def commission_for(self, amount: Decimal) -> Decimal:
        return to_money(Decimal(amount) * self.commission_rate)

    def append_entry(
        self,
        *,
        entry_id: str,
        user_id: str,
        user_type: str,
        entry_type: LedgerEntryType,
        direction: LedgerDirection,
        amount: Decimal,
        booking_id: Optional[str] = None,
        settlement_id: Optional[str] = None,
        payment_mode: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> LedgerEntry:
        """
        Chain one entry after the user's latest entry.

        A concurrent writer that chained first makes this flush fail on the
        (user_id, sequence) constraint, which the transaction runner retries.
        """
        amount = to_money(amount)
        if amount < 0:
            raise ValueError("ledger amounts are non-negative; use direction for sign")

        latest = self.repository.get_latest_for_user(user_id)
        balance_before = latest.balance_after if latest else ZERO
        sequence = latest.sequence + 1 if latest else 1
        created_at = self.now()
        if latest is not None and created_at <= latest.created_at:
            created_at = latest.created_at + _TICK

        if direction == LedgerDirection.CREDIT:
            balance_after = balance_before + amount
        else:
            balance_after = balance_before - amount

        entry = self.repository.create(
            id=entry_id,
            user_id=user_id,
            user_type=user_type,
            booking_id=booking_id,
            settlement_id=settlement_id,
            entry_type=entry_type.value,
            direction=direction.value,
            amount=amount,
            payment_mode=payment_mode,
            balance_before=to_money(balance_before),
            balance_after=to_money(balance_after),
            sequence=sequence,
            reference=reference,
            created_at=created_at,
        )
        prometheus_metrics.record_ledger_entry(entry_type.value)
        logger.info(
            "Ledger entry posted",
            extra={
                "ledger_id": entry_id,
                "user_id": user_id,
                "entry_type": entry_type.value,
                "amount": str(amount),
                "balance_after": str(entry.balance_after),
            },
        )
        return entry

    def post_booking_earning(self, booking: Booking) -> List[LedgerEntry]:
        """EARNING credit then COMMISSION debit for a completed booking, at most once."""
        amount = to_money(booking.payment_amount or ZERO)
        provider_id = booking.provider_id
        if amount <= 0 or not provider_id:
            return []
        if self.repository.exists(id=earning_ledger_id(booking.id)):
            return []

        user_type = provider_user_type(booking)
        earning = self.append_entry(
            entry_id=earning_ledger_id(booking.id),
            user_id=provider_id,
            user_type=user_type,
            entry_type=LedgerEntryType.EARNING,
            direction=LedgerDirection.CREDIT,
            amount=amount,
            booking_id=booking.id,
            payment_mode=booking.payment_mode,
        )
        commission = self.append_entry(
            entry_id=commission_ledger_id(booking.id),
            user_id=provider_id,
            user_type=user_type,
            entry_type=LedgerEntryType.COMMISSION,
            direction=LedgerDirection.DEBIT,
            amount=self.commission_for(amount),
            booking_id=booking.id,
            payment_mode=booking.payment_mode,
        )
        return [earning, commission]

    def post_booking_refund(self, booking: Booking) -> Optional[LedgerEntry]:
        """Full-amount REFUND debit against the provider, at most once per booking."""
        amount = to_money(booking.payment_amount or ZERO)
        provider_id = booking.provider_id
        if amount <= 0 or not provider_id:
            return None
        if self.repository.exists(id=refund_ledger_id(booking.id)):
            return None

        return self.append_entry(
            entry_id=refund_ledger_id(booking.id),
            user_id=provider_id,
            user_type=provider_user_type(booking),
            entry_type=LedgerEntryType.REFUND,
            direction=LedgerDirection.DEBIT,
            amount=amount,
            booking_id=booking.id,
            payment_mode=booking.payment_mode,
        )

    def post_payout(self, settlement: Settlement) -> Optional[LedgerEntry]:
        entry_id = payout_ledger_id(settlement.id)
        if self.repository.exists(id=entry_id):
            return None
        return self.append_entry(
            entry_id=entry_id,
            user_id=settlement.user_id,
            user_type=settlement.user_type,
            entry_type=LedgerEntryType.PAYOUT,
            direction=LedgerDirection.DEBIT,
            amount=settlement.payout_amount,
            settlement_id=settlement.id,
        )

    def post_debt_payment(
        self, user_id: str, user_type: str, amount: Decimal, reference: str
    ) -> Optional[LedgerEntry]:
        entry_id = debt_payment_ledger_id(reference)
        if self.repository.exists(id=entry_id):
            return None
        return self.append_entry(
            entry_id=entry_id,
            user_id=user_id,
            user_type=user_type,
            entry_type=LedgerEntryType.DEBT_PAYMENT,
            direction=LedgerDirection.CREDIT,
            amount=amount,
            reference=reference,
        )

    def get_payable_balance(self, user_id: str) -> Decimal:
        """
        What the platform owes the provider, recomputed from the full history.

        Offline EARNING entries are cash the provider already holds, so they
        never count; the COMMISSION on them still does, as a debt.
        """
        balance = ZERO
        for entry in self.repository.list_for_user(user_id):
            if entry.direction == LedgerDirection.DEBIT.value:
                balance -= entry.amount
            elif entry.entry_type == LedgerEntryType.EARNING.value:
                if entry.payment_mode == PaymentMode.ONLINE.value:
                    balance += entry.amount
            elif entry.entry_type == LedgerEntryType.DEBT_PAYMENT.value:
                balance += entry.amount
        return to_money(balance)

    def get_entries(self, user_id: str) -> List[LedgerEntry]:
        return self.repository.list_for_user(user_id)

# backend/jayple/models/ledger.py
"""
Provider ledger.

Entries are append-only. Each id is derived from the business event that
produced it (``<bookingId>_EARNING``, ``<settlementId>_PAYOUT``...) so a
retried write collides on the primary key instead of posting twice. Per user
the (sequence, created_at) pair is strictly increasing and every
balance_before equals the previous entry's balance_after.
"""

from typing import Any, Dict

from sqlalchemy import CheckConstraint, Column, Index, Integer, Numeric, String, UniqueConstraint

from ..database import Base
from .types import UTCDateTime


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id = Column(String(128), primary_key=True)
    user_id = Column(String(64), nullable=False)
    user_type = Column(String(20), nullable=False)
    booking_id = Column(String(26), nullable=True, index=True)
    settlement_id = Column(String(128), nullable=True)
    entry_type = Column(String(20), nullable=False)
    direction = Column(String(6), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_mode = Column(String(10), nullable=True)
    balance_before = Column(Numeric(14, 2), nullable=False)
    balance_after = Column(Numeric(14, 2), nullable=False)
    sequence = Column(Integer, nullable=False)
    reference = Column(String(128), nullable=True)
    created_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "sequence", name="uq_ledger_entries_user_sequence"),
        CheckConstraint("amount >= 0", name="ck_ledger_entries_amount_non_negative"),
        CheckConstraint("direction IN ('CREDIT', 'DEBIT')", name="ck_ledger_entries_direction"),
        Index("ix_ledger_entries_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.id}: {self.entry_type} {self.direction} {self.amount} "
            f"({self.balance_before} -> {self.balance_after})>"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledgerId": self.id,
            "userId": self.user_id,
            "userType": self.user_type,
            "bookingId": self.booking_id,
            "settlementId": self.settlement_id,
            "entryType": self.entry_type,
            "direction": self.direction,
            "amount": self.amount,
            "paymentMode": self.payment_mode,
            "balanceBefore": self.balance_before,
            "balanceAfter": self.balance_after,
            "sequence": self.sequence,
            "reference": self.reference,
            "createdAt": self.created_at,
        }

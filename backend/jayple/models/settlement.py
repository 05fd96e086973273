# backend/jayple/models/settlement.py
"""
Weekly settlement model.

One row per (user, ISO week). The id ``<userId>_<periodId>`` doubles as the
idempotency key of the batch run.
"""

from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import Column, Integer, Numeric, String, UniqueConstraint

from ..database import Base
from .types import UTCDateTime


class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(String(128), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    user_type = Column(String(20), nullable=False)
    period_id = Column(String(10), nullable=False)
    period_start = Column(UTCDateTime, nullable=False)
    period_end = Column(UTCDateTime, nullable=False)
    net_amount = Column(Numeric(14, 2), nullable=False)
    payout_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    carry_forward_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    status = Column(String(20), nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
    paid_at = Column(UTCDateTime, nullable=True)

    version = Column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "period_id", name="uq_settlements_user_period"),)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Settlement {self.id}: {self.status} net={self.net_amount}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settlementId": self.id,
            "userId": self.user_id,
            "userType": self.user_type,
            "periodId": self.period_id,
            "periodStart": self.period_start,
            "periodEnd": self.period_end,
            "netAmount": self.net_amount,
            "payoutAmount": self.payout_amount,
            "carryForwardAmount": self.carry_forward_amount,
            "status": self.status,
            "createdAt": self.created_at,
            "paidAt": self.paid_at,
        }

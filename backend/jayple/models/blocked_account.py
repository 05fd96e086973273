# backend/jayple/models/blocked_account.py
"""Suspension record written only by the blocking policy."""

from sqlalchemy import Column, Numeric, String

from ..database import Base
from .types import UTCDateTime


class BlockedAccount(Base):
    __tablename__ = "blocked_accounts"

    # Zero or one per user
    user_id = Column(String(64), primary_key=True)
    user_type = Column(String(20), nullable=False)
    reason = Column(String(40), nullable=False)
    outstanding_amount = Column(Numeric(14, 2), nullable=False)
    blocked_at = Column(UTCDateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<BlockedAccount {self.user_id}: {self.reason} outstanding={self.outstanding_amount}>"

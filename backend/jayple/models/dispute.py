# backend/jayple/models/dispute.py
"""Post-completion dispute raised by either party of a booking."""

from typing import Any, Dict

from sqlalchemy import Column, ForeignKey, String, Text

from ..core.enums import DisputeStatus
from ..database import Base
from .types import UTCDateTime


class Dispute(Base):
    __tablename__ = "disputes"

    # <bookingId>_DISPUTE: one dispute per booking
    id = Column(String(64), primary_key=True)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, unique=True)
    city_id = Column(String(64), nullable=False)
    raised_by = Column(String(64), nullable=False)
    raised_by_role = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(10), nullable=False, default=DisputeStatus.OPEN.value)
    resolution = Column(String(10), nullable=True)
    resolved_by = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    resolved_at = Column(UTCDateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Dispute {self.id}: {self.status}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disputeId": self.id,
            "bookingId": self.booking_id,
            "cityId": self.city_id,
            "raisedBy": self.raised_by,
            "raisedByRole": self.raised_by_role,
            "reason": self.reason,
            "status": self.status,
            "resolution": self.resolution,
            "resolvedBy": self.resolved_by,
            "createdAt": self.created_at,
            "resolvedAt": self.resolved_at,
        }

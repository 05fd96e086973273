# backend/jayple/schemas/dispute.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from ..core.enums import DisputeDecision
from .base import StandardizedModel, StrictRequestModel


class DisputeCreate(StrictRequestModel):
    city_id: str = Field(..., min_length=1)
    booking_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=2000)


class DisputeResolve(StrictRequestModel):
    decision: DisputeDecision


class DisputeResponse(StandardizedModel):
    dispute_id: str
    booking_id: str
    city_id: str
    raised_by: str
    raised_by_role: str
    reason: str
    status: str
    resolution: Optional[str] = None
    resolved_by: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

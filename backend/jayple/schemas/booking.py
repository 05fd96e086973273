# backend/jayple/schemas/booking.py
"""Booking request/response DTOs."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..core.enums import BookingType, ProviderAction
from .base import Money, StandardizedModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    city_id: str = Field(..., min_length=1, max_length=64)
    service_id: str = Field(..., min_length=1, max_length=64)
    type: BookingType
    scheduled_at: Optional[datetime] = None
    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)


class ProviderResponseRequest(StrictRequestModel):
    action: ProviderAction


class AssignmentAttempt(StandardizedModel):
    freelancer_id: str
    assigned_at: Optional[str] = None
    failed_at: Optional[str] = None


class PaymentInfo(StandardizedModel):
    mode: str
    status: str
    amount: Money
    currency: str
    provider_ref: Optional[str] = None


class StatusEventResponse(StandardizedModel):
    type: str
    from_: Optional[str] = Field(default=None, alias="from")
    to: str
    actor: str
    actor_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime


class BookingResponse(StandardizedModel):
    booking_id: str
    city_id: str
    idempotency_key: Optional[str] = None
    type: str
    service_id: str
    service_category: str
    customer_id: str
    freelancer_id: Optional[str] = None
    vendor_id: Optional[str] = None
    status: str
    failure_reason: Optional[str] = None
    assignment_attempts: List[AssignmentAttempt] = Field(default_factory=list)
    payment: PaymentInfo
    scheduled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    status_events: Optional[List[StatusEventResponse]] = None


class BookingCreateResponse(StandardizedModel):
    booking: BookingResponse
    already_exists: bool = False


class ProviderResponseResponse(StandardizedModel):
    booking: BookingResponse
    action: str
    reassigned: bool = False


class BookingListResponse(StandardizedModel):
    items: List[BookingResponse]
    total: int

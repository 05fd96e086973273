# backend/jayple/models/booking.py
"""
Booking model for the Jayple dispatch engine.

A booking is one service request in a city. IN_SHOP bookings belong to a
vendor from the moment they are created; HOME bookings are offered to one
freelancer at a time. Payment is embedded as a sub-record (payment_* columns)
with its own state machine. Every status or payment transition appends a
BookingStatusEvent in the same transaction.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.enums import BookingStatus, BookingType, PaymentMode, PaymentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime


class Booking(Base):
    """Service request between a customer and a single provider."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    city_id = Column(String(64), nullable=False, index=True)
    idempotency_key = Column(String(128), nullable=True)

    type = Column(String(10), nullable=False)
    service_id = Column(String(64), ForeignKey("services.id"), nullable=False)
    service_category = Column(String(64), nullable=False)

    # Parties come from the identity verifier; exactly one provider reference is set
    customer_id = Column(String(64), nullable=False, index=True)
    freelancer_id = Column(String(64), nullable=True, index=True)
    vendor_id = Column(String(64), nullable=True, index=True)

    status = Column(String(20), nullable=False, default=BookingStatus.CREATED.value, index=True)
    failure_reason = Column(String(40), nullable=True)
    # [{"freelancerId", "assignedAt", "failedAt"}]; always reassign a new list
    assignment_attempts = Column(JSON, nullable=False, default=list)

    payment_mode = Column(String(10), nullable=False)
    payment_status = Column(String(20), nullable=False)
    payment_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    payment_currency = Column(String(3), nullable=False)
    payment_provider_ref = Column(String(128), nullable=True)

    scheduled_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    version = Column(Integer, nullable=False)

    status_events = relationship(
        "BookingStatusEvent",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingStatusEvent.id",
    )

    __table_args__ = (
        UniqueConstraint("city_id", "idempotency_key", name="uq_bookings_city_idempotency_key"),
        CheckConstraint("type IN ('IN_SHOP', 'HOME')", name="ck_bookings_type"),
        CheckConstraint("payment_amount >= 0", name="ck_bookings_amount_non_negative"),
        Index("ix_bookings_customer_created", "customer_id", "created_at"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: city={self.city_id}, type={self.type}, "
            f"status={self.status}, payment={self.payment_mode}/{self.payment_status}>"
        )

    @property
    def is_home(self) -> bool:
        return self.type == BookingType.HOME.value

    @property
    def provider_id(self) -> Optional[str]:
        """The provider identity that owns this booking, if any."""
        return self.freelancer_id if self.is_home else self.vendor_id

    @property
    def is_online_payment(self) -> bool:
        return self.payment_mode == PaymentMode.ONLINE.value

    @property
    def is_captured(self) -> bool:
        return self.is_online_payment and self.payment_status == PaymentStatus.CAPTURED.value

    @property
    def tried_freelancer_ids(self) -> List[str]:
        return [attempt["freelancerId"] for attempt in (self.assignment_attempts or [])]

    def to_dict(self, include_events: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        data: Dict[str, Any] = {
            "bookingId": self.id,
            "cityId": self.city_id,
            "idempotencyKey": self.idempotency_key,
            "type": self.type,
            "serviceId": self.service_id,
            "serviceCategory": self.service_category,
            "customerId": self.customer_id,
            "freelancerId": self.freelancer_id,
            "vendorId": self.vendor_id,
            "status": self.status,
            "failureReason": self.failure_reason,
            "assignmentAttempts": list(self.assignment_attempts or []),
            "payment": {
                "mode": self.payment_mode,
                "status": self.payment_status,
                "amount": self.payment_amount,
                "currency": self.payment_currency,
                "providerRef": self.payment_provider_ref,
            },
            "scheduledAt": self.scheduled_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if include_events:
            data["statusEvents"] = [event.to_dict() for event in self.status_events]
        return data


class BookingStatusEvent(Base):
    """
    Append-only audit row for a booking.

    event_type STATUS rows move the booking along its state machine,
    PAYMENT rows track the payment sub-status, AUDIT rows are markers
    (the assignment TIMEOUT) that leave the booking where it was.
    """

    __tablename__ = "booking_status_events"

    # Autoincrement keeps insertion order even when timestamps tie
    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, index=True)
    event_type = Column(String(10), nullable=False)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    actor = Column(String(20), nullable=False)
    actor_id = Column(String(64), nullable=True)
    event_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)

    booking = relationship("Booking", back_populates="status_events")

    def __repr__(self) -> str:
        return (
            f"<BookingStatusEvent {self.booking_id}: {self.event_type} "
            f"{self.from_status}->{self.to_status} by {self.actor}>"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type,
            "from": self.from_status,
            "to": self.to_status,
            "actor": self.actor,
            "actorId": self.actor_id,
            "metadata": self.event_metadata,
            "timestamp": self.created_at,
        }

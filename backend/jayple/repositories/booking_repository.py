# backend/jayple/repositories/booking_repository.py
"""
Booking Repository for the Jayple dispatch engine.

Bookings are addressed by (city_id, booking_id); status events are only ever
appended, never updated or deleted.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ..models.booking import Booking, BookingStatusEvent
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_in_city(
        self, city_id: str, booking_id: str, load_events: bool = False
    ) -> Optional[Booking]:
        query = self.db.query(Booking).filter(Booking.id == booking_id, Booking.city_id == city_id)
        if load_events:
            query = query.options(selectinload(Booking.status_events))
        return query.first()

    def get_by_idempotency_key(self, city_id: str, idempotency_key: str) -> Optional[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.city_id == city_id, Booking.idempotency_key == idempotency_key)
            .first()
        )

    def list_for_party(
        self,
        *,
        customer_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Booking]:
        """Newest-first bookings where the user is the customer or the provider."""
        query = self.db.query(Booking)
        if customer_id is not None:
            query = query.filter(Booking.customer_id == customer_id)
        elif provider_id is not None:
            query = query.filter(
                or_(Booking.freelancer_id == provider_id, Booking.vendor_id == provider_id)
            )
        else:
            return []
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).all()

    def add_event(
        self,
        booking: Booking,
        *,
        event_type: str,
        from_status: Optional[str],
        to_status: str,
        actor: str,
        actor_id: Optional[str],
        created_at: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> BookingStatusEvent:
        event = BookingStatusEvent(
            event_type=event_type,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            actor_id=actor_id,
            event_metadata=metadata,
            created_at=created_at,
        )
        booking.status_events.append(event)
        return event

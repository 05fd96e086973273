# backend/jayple/models/__init__.py
"""
SQLAlchemy models for the Jayple dispatch engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .blocked_account import BlockedAccount
from .booking import Booking, BookingStatusEvent
from .dispute import Dispute
from .ledger import LedgerEntry
from .service_catalog import Service
from .settlement import Settlement
from .user import Freelancer, User

__all__ = [
    "BlockedAccount",
    "Booking",
    "BookingStatusEvent",
    "Dispute",
    "Freelancer",
    "LedgerEntry",
    "Service",
    "Settlement",
    "User",
]

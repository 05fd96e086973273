# backend/jayple/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import accounts, bookings, disputes, payments, settlements

__all__ = ["accounts", "bookings", "disputes", "payments", "settlements"]

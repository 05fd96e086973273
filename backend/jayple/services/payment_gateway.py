# backend/jayple/services/payment_gateway.py
"""
Payment provider boundary.

Only the mock provider ships: references are derived from the booking id so
a retried transaction body produces the same reference.
"""

from typing import Protocol

from ..models.booking import Booking


class PaymentGateway(Protocol):
    def authorize(self, booking: Booking) -> str:
        ...

    def capture(self, booking: Booking) -> str:
        ...

    def refund(self, booking: Booking) -> str:
        ...


class MockPaymentGateway:
    def authorize(self, booking: Booking) -> str:
        return f"MOCK_AUTH_{booking.id}"

    def capture(self, booking: Booking) -> str:
        return f"MOCK_CAPTURE_{booking.id}"

    def refund(self, booking: Booking) -> str:
        return f"MOCK_REFUND_{booking.id}"

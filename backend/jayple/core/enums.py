# backend/jayple/core/enums.py
"""
Core enums for the Jayple dispatch engine.

Stored as plain strings in the database; the str mixin keeps comparisons
against raw column values working.
"""

from enum import Enum


class RoleName(str, Enum):
    """Caller roles yielded by the identity verifier."""

    CUSTOMER = "customer"
    VENDOR = "vendor"
    FREELANCER = "freelancer"
    ADMIN = "admin"
    SYSTEM = "system"


PROVIDER_ROLES = frozenset({RoleName.VENDOR.value, RoleName.FREELANCER.value})
OPERATOR_ROLES = frozenset({RoleName.ADMIN.value, RoleName.SYSTEM.value})


class BookingType(str, Enum):
    IN_SHOP = "IN_SHOP"
    HOME = "HOME"


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"  # HOME only: a freelancer holds the offer
    REASSIGNED = "REASSIGNED"  # transient, recorded in events only
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class StatusEventType(str, Enum):
    """Kinds of rows in a booking's audit trail."""

    STATUS = "STATUS"  # booking status transition
    PAYMENT = "PAYMENT"  # payment sub-status transition
    AUDIT = "AUDIT"  # marker that does not move the booking (e.g. TIMEOUT)


TIMEOUT_MARKER = "TIMEOUT"


class StatusActor(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    FREELANCER = "freelancer"
    SYSTEM = "system"
    ADMIN = "admin"


class ProviderAction(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


class FailureReason(str, Enum):
    NO_FREELANCER_AVAILABLE = "NO_FREELANCER_AVAILABLE"
    MAX_ASSIGNMENT_ATTEMPTS = "MAX_ASSIGNMENT_ATTEMPTS"
    PAYMENT_FAILED = "PAYMENT_FAILED"


class AssignmentTrigger(str, Enum):
    INITIAL = "INITIAL"
    REJECTION = "REJECTION"
    TIMEOUT = "TIMEOUT"


class PaymentMode(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class PaymentStatus(str, Enum):
    NOT_REQUIRED = "NOT_REQUIRED"
    PENDING = "PENDING"
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class FreelancerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PriorityTier(str, Enum):
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"


TIER_RANK = {
    PriorityTier.GOLD.value: 3,
    PriorityTier.SILVER.value: 2,
    PriorityTier.BRONZE.value: 1,
}


class LedgerEntryType(str, Enum):
    EARNING = "EARNING"
    COMMISSION = "COMMISSION"
    REFUND = "REFUND"
    PAYOUT = "PAYOUT"
    DEBT_PAYMENT = "DEBT_PAYMENT"


class LedgerDirection(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class BlockReason(str, Enum):
    OUTSTANDING_LIMIT_EXCEEDED = "OUTSTANDING_LIMIT_EXCEEDED"


class SettlementStatus(str, Enum):
    PAYABLE = "PAYABLE"
    CARRIED_FORWARD = "CARRIED_FORWARD"
    PAID = "PAID"


class DisputeStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class DisputeDecision(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"

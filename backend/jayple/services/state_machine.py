# backend/jayple/services/state_machine.py
"""
Booking and payment transition tables.

Every STATUS event written for a booking must be an edge of
BOOKING_TRANSITIONS, every PAYMENT event an edge of PAYMENT_TRANSITIONS.
REASSIGNED only ever appears between two ASSIGNED events.
"""

from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from ..core.enums import BookingStatus, PaymentStatus
from ..core.exceptions import FailedPreconditionException

S = BookingStatus
P = PaymentStatus

BOOKING_TRANSITIONS: Dict[Optional[str], FrozenSet[str]] = {
    None: frozenset({S.CREATED.value}),
    S.CREATED.value: frozenset(
        {S.ASSIGNED.value, S.CONFIRMED.value, S.REJECTED.value, S.FAILED.value, S.CANCELLED.value}
    ),
    S.ASSIGNED.value: frozenset(
        {S.REASSIGNED.value, S.CONFIRMED.value, S.FAILED.value, S.CANCELLED.value}
    ),
    S.REASSIGNED.value: frozenset({S.ASSIGNED.value}),
    S.CONFIRMED.value: frozenset(
        {S.IN_PROGRESS.value, S.COMPLETED.value, S.FAILED.value, S.CANCELLED.value}
    ),
    S.IN_PROGRESS.value: frozenset({S.COMPLETED.value, S.FAILED.value, S.CANCELLED.value}),
    # Cancelling is only refused from FAILED and CANCELLED
    S.COMPLETED.value: frozenset({S.CANCELLED.value}),
    S.REJECTED.value: frozenset({S.CANCELLED.value}),
    S.FAILED.value: frozenset(),
    S.CANCELLED.value: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    P.NOT_REQUIRED.value: frozenset(),
    P.PENDING.value: frozenset({P.AUTHORIZED.value}),
    P.AUTHORIZED.value: frozenset({P.CAPTURED.value, P.FAILED.value}),
    P.CAPTURED.value: frozenset({P.REFUNDED.value}),
    P.FAILED.value: frozenset(),
    P.REFUNDED.value: frozenset(),
}


def can_transition(current: Optional[str], target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: Optional[str], target: str) -> None:
    if not can_transition(current, target):
        raise FailedPreconditionException(
            f"Booking cannot move from {current} to {target}",
            details={"from": current, "to": target},
        )


def ensure_payment_transition(current: str, target: str) -> None:
    if target not in PAYMENT_TRANSITIONS.get(current, frozenset()):
        raise FailedPreconditionException(
            f"Payment cannot move from {current} to {target}",
            details={"from": current, "to": target},
        )


def is_valid_status_chain(pairs: Iterable[Tuple[Optional[str], str]]) -> bool:
    """True when (from, to) pairs start at creation, link end to end and use allowed edges."""
    previous: Optional[str] = None
    for from_status, to_status in pairs:
        if from_status != previous or not can_transition(from_status, to_status):
            return False
        previous = to_status
    return True

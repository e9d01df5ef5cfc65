"""
Closed status types for sessions, reservations, payments and memberships.

Each lifecycle enum owns its transition table; every status change in the
CRUD layer goes through ``ensure_transition`` instead of comparing strings
at the call site.
"""
import enum
from typing import Dict, FrozenSet, TypeVar

from gymbook.core.errors import BusinessRuleError, INVALID_METHOD, INVALID_TRANSITION


class SessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class ReservationStatus(str, enum.Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    POS = "POS"
    BANK_TRANSFER = "BANK_TRANSFER"


class MembershipStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


# Reservations in these states hold a seat
SEAT_HOLDING_STATUSES: FrozenSet[ReservationStatus] = frozenset({
    ReservationStatus.PENDING_PAYMENT,
    ReservationStatus.PAID,
})

RESERVATION_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING_PAYMENT: frozenset({ReservationStatus.PAID, ReservationStatus.CANCELLED}),
    ReservationStatus.PAID: frozenset({
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
        ReservationStatus.COMPLETED,
    }),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}

MEMBERSHIP_TRANSITIONS: Dict[MembershipStatus, FrozenSet[MembershipStatus]] = {
    MembershipStatus.PENDING: frozenset({MembershipStatus.ACTIVE, MembershipStatus.CANCELLED}),
    MembershipStatus.ACTIVE: frozenset({
        MembershipStatus.EXPIRED,
        MembershipStatus.SUSPENDED,
        MembershipStatus.CANCELLED,
    }),
    MembershipStatus.SUSPENDED: frozenset({MembershipStatus.ACTIVE, MembershipStatus.CANCELLED}),
    MembershipStatus.EXPIRED: frozenset(),
    MembershipStatus.CANCELLED: frozenset(),
}

_TABLES = {
    ReservationStatus: RESERVATION_TRANSITIONS,
    MembershipStatus: MEMBERSHIP_TRANSITIONS,
}

S = TypeVar("S", ReservationStatus, MembershipStatus)


def can_transition(current: S, target: S) -> bool:
    table = _TABLES[type(current)]
    return target in table[current]


def ensure_transition(current: S, target: S, code: str = INVALID_TRANSITION) -> S:
    """Return ``target`` if the move is legal, else raise BusinessRuleError(code)."""
    if not can_transition(current, target):
        raise BusinessRuleError(
            f"Cannot move {type(current).__name__} from {current.value} to {target.value}",
            code,
        )
    return target


def is_terminal(status: S) -> bool:
    return not _TABLES[type(status)][status]


def parse_payment_method(value: str) -> PaymentMethod:
    try:
        return PaymentMethod(str(value).upper())
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise BusinessRuleError(
            f"Unknown payment method {value!r} (expected one of {allowed})", INVALID_METHOD
        ) from None

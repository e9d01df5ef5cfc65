"""
Payment ledger: settling a reservation flips it to PAID in the same unit of work.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.config import DEFAULT_CURRENCY
from gymbook.core.conversions import coerce_decimal
from gymbook.core.errors import (
    BusinessRuleError,
    INVALID_AMOUNT, INVALID_STATUS, PAYMENT_EXISTS,
)
from gymbook.core.logging_config import get_logger
from gymbook.core.states import (
    PaymentMethod, PaymentStatus, ReservationStatus, parse_payment_method,
)
from gymbook.core.timeutils import utcnow
from gymbook.crud.reservationsCrud import load_reservation, transition_reservation
from gymbook.db.postgresql import unit_of_work
from gymbook.models import Payment

logger = get_logger("crud.payments")

CENT = Decimal("0.01")


@dataclass
class PaymentData:
    id: int
    reservation_id: Optional[int]
    membership_id: Optional[int]
    user_id: int
    club_id: int
    amount: Decimal
    currency: str
    method: str
    reference_number: Optional[str]
    status: str
    paid_at: Optional[datetime]
    recorded_by: Optional[int]
    notes: Optional[str]

    # Related data, filled by services.projections
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    recorded_by_name: Optional[str] = None
    activity_name: Optional[str] = None
    plan_name: Optional[str] = None

    @property
    def payment_type(self) -> str:
        return "MEMBERSHIP" if self.membership_id is not None else "RESERVATION"


def _payment_to_data(payment: Payment) -> PaymentData:
    return PaymentData(
        id=payment.id,
        reservation_id=payment.reservation_id,
        membership_id=payment.membership_id,
        user_id=payment.user_id,
        club_id=payment.club_id,
        amount=payment.amount,
        currency=payment.currency,
        method=payment.method.value,
        reference_number=payment.reference_number,
        status=payment.status.value,
        paid_at=payment.paid_at,
        recorded_by=payment.recorded_by,
        notes=payment.notes,
    )


def validate_amount(amount: object) -> Decimal:
    """Positive fixed-point amount with at most two decimal places"""
    value = coerce_decimal(amount)
    if value is None or value <= 0:
        raise BusinessRuleError("Payment amount must be a positive number", INVALID_AMOUNT)
    if value != value.quantize(CENT):
        raise BusinessRuleError("Payment amount has more than two decimal places", INVALID_AMOUNT)
    return value.quantize(CENT)


async def create_payment(
    db: AsyncSession,
    *,
    user_id: int,
    club_id: int,
    amount: Decimal,
    method: PaymentMethod,
    reservation_id: Optional[int] = None,
    membership_id: Optional[int] = None,
    reference_number: Optional[str] = None,
    recorded_by: Optional[int] = None,
    notes: Optional[str] = None,
    currency: str = DEFAULT_CURRENCY
) -> Payment:
    """Insert a settled payment for exactly one target; flushes, never commits."""
    if (reservation_id is None) == (membership_id is None):
        raise ValueError("A payment must reference exactly one of reservation_id / membership_id")

    payment = Payment(
        reservation_id=reservation_id,
        membership_id=membership_id,
        user_id=user_id,
        club_id=club_id,
        amount=amount,
        currency=currency,
        method=method,
        reference_number=reference_number,
        status=PaymentStatus.PAID,
        paid_at=utcnow(),
        recorded_by=recorded_by,
        notes=notes,
    )
    db.add(payment)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost the race against a concurrent settlement of the same target
        raise BusinessRuleError("A payment is already recorded for this item", PAYMENT_EXISTS) from e
    return payment


async def _find_payment_for_reservation(db: AsyncSession, reservation_id: int) -> Optional[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.reservation_id == reservation_id)
    )
    return result.scalar_one_or_none()


async def record_payment(
    db: AsyncSession,
    *,
    reservation_id: int,
    amount: object,
    method: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    recorded_by: Optional[int] = None,
    commit: bool = True
) -> PaymentData:
    """
    Record that a reservation was paid and move it to PAID.

    Guards run before any write: unknown reservation (NOT_FOUND), an existing
    payment (PAYMENT_EXISTS), a reservation not in PENDING_PAYMENT
    (INVALID_STATUS).
    """
    amount_value = validate_amount(amount)
    payment_method = parse_payment_method(method)

    async with unit_of_work(db, commit):
        reservation = await load_reservation(db, reservation_id)

        if await _find_payment_for_reservation(db, reservation_id) is not None:
            raise BusinessRuleError("A payment is already recorded for this reservation", PAYMENT_EXISTS)

        if reservation.status != ReservationStatus.PENDING_PAYMENT:
            raise BusinessRuleError("Reservation is not waiting for payment", INVALID_STATUS)

        payment = await create_payment(
            db,
            user_id=reservation.user_id,
            club_id=reservation.club_id,
            amount=amount_value,
            method=payment_method,
            reservation_id=reservation.id,
            reference_number=reference_number,
            recorded_by=recorded_by,
            notes=notes,
        )
        await transition_reservation(db, reservation, ReservationStatus.PAID, INVALID_STATUS)
        data = _payment_to_data(payment)

    logger.info(
        "Payment recorded: %s for reservation %s by staff %s",
        data.id, reservation_id, recorded_by,
    )
    return data


async def get_payment_by_id(db: AsyncSession, payment_id: int) -> Optional[PaymentData]:
    result = await db.execute(select(Payment).where(Payment.id == payment_id))
    payment = result.scalar_one_or_none()
    return _payment_to_data(payment) if payment else None


async def get_payment_by_reservation(db: AsyncSession, reservation_id: int) -> Optional[PaymentData]:
    payment = await _find_payment_for_reservation(db, reservation_id)
    return _payment_to_data(payment) if payment else None


async def get_club_payments(
    db: AsyncSession,
    club_id: int,
    limit: int = 100,
    offset: int = 0
) -> List[PaymentData]:
    """Payment history of a club, newest first"""
    result = await db.execute(
        select(Payment)
        .where(Payment.club_id == club_id)
        .order_by(Payment.paid_at.desc(), Payment.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return [_payment_to_data(p) for p in result.scalars().all()]


async def get_payment_by_membership(db: AsyncSession, membership_id: int) -> Optional[PaymentData]:
    result = await db.execute(select(Payment).where(Payment.membership_id == membership_id))
    payment = result.scalar_one_or_none()
    return _payment_to_data(payment) if payment else None

"""
Reservation lifecycle: create (claims a seat), cancel (releases it), check-in.

A seat claim and the reservation row it pays for are written in the same
transaction; if either fails, ``unit_of_work`` rolls both back.
"""
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, List

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.config import BOOKING_CONFLICT_RETRIES
from gymbook.core.errors import (
    BusinessRuleError, ConflictError, ForbiddenError, NotFoundError,
    ALREADY_BOOKED, CANNOT_CANCEL, CANNOT_CHECK_IN,
)
from gymbook.core.logging_config import get_logger, log_security_event
from gymbook.core.states import ReservationStatus, SEAT_HOLDING_STATUSES, ensure_transition
from gymbook.core.timeutils import utcnow
from gymbook.crud.sessionCapacityCrud import try_claim_seat, release_seat
from gymbook.db.postgresql import unit_of_work
from gymbook.models import Reservation

logger = get_logger("crud.reservations")


@dataclass
class ReservationData:
    """Clean reservation data structure"""
    id: int
    user_id: int
    session_id: int
    club_id: int
    status: str
    booked_at: datetime
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    checked_in_at: Optional[datetime] = None
    version: int = 0

    # Related data, filled by services.projections
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    club_name: Optional[str] = None
    activity_name: Optional[str] = None
    session_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


def _reservation_to_data(reservation: Reservation) -> ReservationData:
    return ReservationData(
        id=reservation.id,
        user_id=reservation.user_id,
        session_id=reservation.session_id,
        club_id=reservation.club_id,
        status=reservation.status.value,
        booked_at=reservation.booked_at,
        cancelled_at=reservation.cancelled_at,
        cancellation_reason=reservation.cancellation_reason,
        checked_in_at=reservation.checked_in_at,
        version=reservation.version,
    )


async def load_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)
    return reservation


async def _has_live_reservation(db: AsyncSession, user_id: int, session_id: int) -> bool:
    result = await db.execute(
        select(Reservation.id)
        .where(
            Reservation.user_id == user_id,
            Reservation.session_id == session_id,
            Reservation.status != ReservationStatus.CANCELLED,
        )
        .limit(1)
    )
    return result.first() is not None


async def update_reservation_versioned(
    db: AsyncSession,
    reservation: Reservation,
    **values
) -> Reservation:
    """Write ``values`` only if the row still carries the version we read; bump the version."""
    result = await db.execute(
        update(Reservation)
        .where(
            Reservation.id == reservation.id,
            Reservation.version == reservation.version,
        )
        .values(version=reservation.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "Reservation %s changed concurrently (read version %s)",
            reservation.id, reservation.version,
        )
        raise ConflictError("Reservation was updated concurrently. Please try again.")

    return await load_reservation(db, reservation.id)


async def transition_reservation(
    db: AsyncSession,
    reservation: Reservation,
    target: ReservationStatus,
    code: str,
    **values
) -> Reservation:
    ensure_transition(reservation.status, target, code)
    return await update_reservation_versioned(db, reservation, status=target, **values)


async def create_reservation(
    db: AsyncSession,
    *,
    user_id: int,
    session_id: int,
    max_conflict_retries: int = BOOKING_CONFLICT_RETRIES,
    commit: bool = True
) -> ReservationData:
    """
    Book one seat on a class session for a user.

    The duplicate check and the seat claim are re-run together after an
    optimistic conflict, at most ``max_conflict_retries`` times; after that
    the ConflictError reaches the caller, who may retry the whole request.
    """
    async with unit_of_work(db, commit):
        attempt = 0
        while True:
            if await _has_live_reservation(db, user_id, session_id):
                raise BusinessRuleError("You have already booked this session", ALREADY_BOOKED)
            try:
                claimed = await try_claim_seat(db, session_id)
                break
            except ConflictError:
                if attempt >= max_conflict_retries:
                    raise
                attempt += 1
                logger.info(
                    "Retrying seat claim on session %s for user %s (attempt %s)",
                    session_id, user_id, attempt + 1,
                )

        reservation = Reservation(
            user_id=user_id,
            session_id=session_id,
            club_id=claimed.club_id,
            status=ReservationStatus.PENDING_PAYMENT,
            booked_at=utcnow(),
        )
        db.add(reservation)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError("Reservation could not be stored. Please try again.") from e

        data = _reservation_to_data(reservation)

    logger.info(
        "Reservation created: %s for user %s on session %s (%s/%s booked)",
        data.id, user_id, session_id, claimed.booked_count, claimed.capacity,
    )
    return data


async def cancel_reservation(
    db: AsyncSession,
    reservation_id: int,
    *,
    requester_id: int,
    reason: Optional[str] = None,
    is_staff: bool = False,
    commit: bool = True
) -> ReservationData:
    """
    Cancel a PENDING_PAYMENT or PAID reservation and give its seat back.

    Cancelling twice is an error (CANNOT_CANCEL), never a silent success.
    """
    async with unit_of_work(db, commit):
        reservation = await load_reservation(db, reservation_id)

        if not is_staff and reservation.user_id != requester_id:
            log_security_event(
                "reservation_cancel_denied",
                f"user {requester_id} tried to cancel reservation {reservation_id}",
            )
            raise ForbiddenError("You don't have permission to cancel this reservation")

        if reservation.status not in SEAT_HOLDING_STATUSES:
            raise BusinessRuleError("Reservation cannot be cancelled", CANNOT_CANCEL)

        session_id = reservation.session_id
        reservation = await transition_reservation(
            db,
            reservation,
            ReservationStatus.CANCELLED,
            CANNOT_CANCEL,
            cancelled_at=utcnow(),
            cancellation_reason=reason,
        )

        # The reservation is already ours at this point; a counter conflict
        # only means someone else booked or cancelled meanwhile, so re-read.
        attempt = 0
        while True:
            try:
                await release_seat(db, session_id)
                break
            except ConflictError:
                if attempt >= BOOKING_CONFLICT_RETRIES:
                    raise
                attempt += 1

        data = _reservation_to_data(reservation)

    logger.info("Reservation cancelled: %s by user %s", reservation_id, requester_id)
    return data


async def check_in_reservation(
    db: AsyncSession,
    reservation_id: int,
    commit: bool = True
) -> ReservationData:
    """Stamp ``checked_in_at`` on a PAID reservation; the status stays PAID"""
    async with unit_of_work(db, commit):
        reservation = await load_reservation(db, reservation_id)

        if reservation.status != ReservationStatus.PAID or reservation.checked_in_at is not None:
            raise BusinessRuleError("Reservation cannot be checked in", CANNOT_CHECK_IN)

        reservation = await update_reservation_versioned(db, reservation, checked_in_at=utcnow())
        data = _reservation_to_data(reservation)

    logger.info("Reservation checked in: %s", reservation_id)
    return data


async def get_reservation_by_id(
    db: AsyncSession,
    reservation_id: int
) -> Optional[ReservationData]:
    result = await db.execute(
        select(Reservation).where(Reservation.id == reservation_id)
    )
    reservation = result.scalar_one_or_none()
    return _reservation_to_data(reservation) if reservation else None


async def get_reservation_for_requester(
    db: AsyncSession,
    reservation_id: int,
    *,
    requester_id: int,
    is_staff: bool = False
) -> ReservationData:
    """Owner-or-staff read of a single reservation"""
    data = await get_reservation_by_id(db, reservation_id)
    if data is None:
        raise NotFoundError("Reservation", reservation_id)
    if not is_staff and data.user_id != requester_id:
        raise ForbiddenError("You don't have permission to view this reservation")
    return data


async def get_user_reservations(
    db: AsyncSession,
    user_id: int,
    active_only: bool = False,
    limit: int = 100,
    offset: int = 0
) -> List[ReservationData]:
    """Get reservations for a user, newest first"""
    query = select(Reservation).where(Reservation.user_id == user_id)

    if active_only:
        query = query.where(Reservation.status.in_(SEAT_HOLDING_STATUSES))

    query = query.order_by(Reservation.booked_at.desc(), Reservation.id.desc()).offset(offset).limit(limit)

    result = await db.execute(query)
    return [_reservation_to_data(r) for r in result.scalars().all()]


async def get_club_reservations(
    db: AsyncSession,
    club_id: int,
    status: Optional[ReservationStatus] = None,
    limit: int = 100,
    offset: int = 0
) -> List[ReservationData]:
    """Get reservations for a club, newest first, optionally filtered by status"""
    query = select(Reservation).where(Reservation.club_id == club_id)

    if status is not None:
        query = query.where(Reservation.status == status)

    query = query.order_by(Reservation.booked_at.desc(), Reservation.id.desc()).offset(offset).limit(limit)

    result = await db.execute(query)
    return [_reservation_to_data(r) for r in result.scalars().all()]


async def get_pending_payment_reservations(
    db: AsyncSession,
    club_id: int
) -> List[ReservationData]:
    """Reservations at a club still waiting for a payment, oldest first"""
    result = await db.execute(
        select(Reservation)
        .where(
            Reservation.club_id == club_id,
            Reservation.status == ReservationStatus.PENDING_PAYMENT,
        )
        .order_by(Reservation.booked_at.asc(), Reservation.id.asc())
    )
    return [_reservation_to_data(r) for r in result.scalars().all()]


async def count_seat_holding_reservations(db: AsyncSession, session_id: int) -> int:
    """Number of reservations that should be reflected in the session's booked_count"""
    result = await db.execute(
        select(func.count(Reservation.id)).where(
            Reservation.session_id == session_id,
            Reservation.status.in_(SEAT_HOLDING_STATUSES),
        )
    )
    return result.scalar() or 0

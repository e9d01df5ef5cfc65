"""
Session capacity store: the versioned seat counter of a class session.

Every write is a compare-and-swap on ``class_sessions.version``. A write
that finds the version moved raises ConflictError and does not retry:
the booking path has to re-run its own checks against fresh state first.
"""
from dataclasses import dataclass, replace
from datetime import date, time
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.errors import (
    BusinessRuleError, ConflictError, NotFoundError,
    SESSION_FULL, SESSION_UNAVAILABLE,
)
from gymbook.core.logging_config import get_logger
from gymbook.core.states import SessionStatus
from gymbook.models import ClassSession

logger = get_logger("crud.session_capacity")


@dataclass
class SessionCapacityData:
    """Snapshot of a session's seat counter as read, including its version stamp"""
    id: int
    club_id: int
    activity_id: int
    session_date: date
    start_time: time
    end_time: time
    capacity: int
    booked_count: int
    status: SessionStatus
    version: int

    @property
    def available_spots(self) -> int:
        return max(self.capacity - self.booked_count, 0)

    @property
    def is_bookable(self) -> bool:
        return self.status == SessionStatus.SCHEDULED


def _session_to_data(session: ClassSession) -> SessionCapacityData:
    return SessionCapacityData(
        id=session.id,
        club_id=session.club_id,
        activity_id=session.activity_id,
        session_date=session.session_date,
        start_time=session.start_time,
        end_time=session.end_time,
        capacity=session.capacity,
        booked_count=session.booked_count,
        status=session.status,
        version=session.version,
    )


async def read_session_capacity(
    db: AsyncSession,
    session_id: int
) -> Optional[SessionCapacityData]:
    """Read the current counter and version, bypassing any stale identity-map copy"""
    result = await db.execute(
        select(ClassSession)
        .where(ClassSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    session = result.scalar_one_or_none()
    return _session_to_data(session) if session else None


async def _swap_booked_count(
    db: AsyncSession,
    snapshot: SessionCapacityData,
    new_booked_count: int
) -> SessionCapacityData:
    result = await db.execute(
        update(ClassSession)
        .where(
            ClassSession.id == snapshot.id,
            ClassSession.version == snapshot.version,
        )
        .values(booked_count=new_booked_count, version=snapshot.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "Seat counter conflict on session %s (read version %s)",
            snapshot.id, snapshot.version,
        )
        raise ConflictError("Session was updated by another booking. Please try again.")

    return replace(snapshot, booked_count=new_booked_count, version=snapshot.version + 1)


async def try_claim_seat(db: AsyncSession, session_id: int) -> SessionCapacityData:
    """
    Claim one seat on a session.

    Raises:
        NotFoundError: the session does not exist.
        BusinessRuleError: SESSION_UNAVAILABLE if not SCHEDULED, SESSION_FULL if no seat is left.
        ConflictError: another writer bumped the version between read and write.

    The write is not committed here; it belongs to the caller's transaction.
    """
    snapshot = await read_session_capacity(db, session_id)
    if snapshot is None:
        raise NotFoundError("ClassSession", session_id)

    if not snapshot.is_bookable:
        raise BusinessRuleError("Session is not available for booking", SESSION_UNAVAILABLE)

    if snapshot.booked_count >= snapshot.capacity:
        raise BusinessRuleError("Session is fully booked", SESSION_FULL)

    return await _swap_booked_count(db, snapshot, snapshot.booked_count + 1)


async def release_seat(db: AsyncSession, session_id: int) -> Optional[SessionCapacityData]:
    """
    Give one seat back, floored at zero.

    A missing or cancelled session is a no-op and returns None. A version
    mismatch raises ConflictError like ``try_claim_seat``.
    """
    snapshot = await read_session_capacity(db, session_id)
    if snapshot is None:
        logger.info("Seat release skipped: session %s no longer exists", session_id)
        return None

    if snapshot.status == SessionStatus.CANCELLED:
        logger.info("Seat release skipped: session %s is cancelled", session_id)
        return None

    if snapshot.booked_count == 0:
        return snapshot

    return await _swap_booked_count(db, snapshot, snapshot.booked_count - 1)

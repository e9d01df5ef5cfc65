"""
Attendance log. Rows are appended once the membership has been re-validated
and are never updated afterwards.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, List, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.config import CLUB_TIMEZONE
from gymbook.core.errors import (
    BusinessRuleError, NotFoundError,
    INVALID_DATES, MEMBERSHIP_INVALID, SESSION_UNAVAILABLE,
)
from gymbook.core.logging_config import get_logger
from gymbook.core.timeutils import club_today, utcnow
from gymbook.db.postgresql import unit_of_work
from gymbook.models import Attendance, ClassSession, UserMembership

logger = get_logger("crud.attendance")


@dataclass
class AttendanceData:
    id: int
    user_id: int
    membership_id: int
    club_id: int
    session_id: Optional[int]
    check_in_time: datetime
    recorded_by_user_id: Optional[int]
    notes: Optional[str]

    # Related data, filled by services.projections
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    club_name: Optional[str] = None
    activity_name: Optional[str] = None
    recorded_by_name: Optional[str] = None


def _attendance_to_data(attendance: Attendance) -> AttendanceData:
    return AttendanceData(
        id=attendance.id,
        user_id=attendance.user_id,
        membership_id=attendance.membership_id,
        club_id=attendance.club_id,
        session_id=attendance.session_id,
        check_in_time=attendance.check_in_time,
        recorded_by_user_id=attendance.recorded_by_user_id,
        notes=attendance.notes,
    )


def _club_day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """UTC instants covering club-local days ``start`` .. ``end`` inclusive"""
    tz = ZoneInfo(CLUB_TIMEZONE)
    lower = datetime.combine(start, time.min, tzinfo=tz).astimezone(timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)
    return lower, upper


async def record_check_in(
    db: AsyncSession,
    *,
    user_id: int,
    membership_id: int,
    club_id: int,
    session_id: Optional[int] = None,
    recorded_by: Optional[int] = None,
    notes: Optional[str] = None,
    commit: bool = True
) -> AttendanceData:
    """
    Append an attendance row for a member entering the club.

    Validity is checked again here against today's date at the club; an
    earlier ``validate_membership`` answer is not trusted.
    """
    today = club_today()

    async with unit_of_work(db, commit):
        membership = (await db.execute(
            select(UserMembership).where(UserMembership.id == membership_id)
        )).scalar_one_or_none()
        if not membership:
            raise NotFoundError("Membership", membership_id)

        if membership.user_id != user_id or membership.club_id != club_id:
            raise BusinessRuleError("Membership does not belong to this member and club", MEMBERSHIP_INVALID)

        if not membership.is_valid_on(today):
            raise BusinessRuleError("Membership is not valid", MEMBERSHIP_INVALID)

        if session_id is not None:
            session = (await db.execute(
                select(ClassSession).where(ClassSession.id == session_id)
            )).scalar_one_or_none()
            if not session:
                raise NotFoundError("Class session", session_id)
            if session.club_id != club_id:
                raise BusinessRuleError("Class session belongs to another club", SESSION_UNAVAILABLE)

        attendance = Attendance(
            user_id=user_id,
            membership_id=membership_id,
            club_id=club_id,
            session_id=session_id,
            check_in_time=utcnow(),
            recorded_by_user_id=recorded_by,
            notes=notes,
        )
        db.add(attendance)
        await db.flush()
        data = _attendance_to_data(attendance)

    logger.info(
        "Check-in recorded: %s for user %s at club %s (membership %s)",
        data.id, user_id, club_id, membership_id,
    )
    return data


async def get_today_attendance(db: AsyncSession, club_id: int) -> List[AttendanceData]:
    """Check-ins at a club since midnight club time, newest first"""
    today = club_today()
    return await get_attendance_by_date_range(db, club_id, today, today)


async def get_attendance_by_date_range(
    db: AsyncSession,
    club_id: int,
    start_date: date,
    end_date: date
) -> List[AttendanceData]:
    if end_date < start_date:
        raise BusinessRuleError("End date cannot be before start date", INVALID_DATES)

    lower, upper = _club_day_bounds(start_date, end_date)
    result = await db.execute(
        select(Attendance)
        .where(
            Attendance.club_id == club_id,
            Attendance.check_in_time >= lower,
            Attendance.check_in_time < upper,
        )
        .order_by(Attendance.check_in_time.desc(), Attendance.id.desc())
    )
    return [_attendance_to_data(a) for a in result.scalars().all()]


async def get_user_attendance(
    db: AsyncSession,
    user_id: int,
    club_id: Optional[int] = None,
    limit: int = 100
) -> List[AttendanceData]:
    query = select(Attendance).where(Attendance.user_id == user_id)
    if club_id is not None:
        query = query.where(Attendance.club_id == club_id)
    query = query.order_by(Attendance.check_in_time.desc(), Attendance.id.desc()).limit(limit)

    result = await db.execute(query)
    return [_attendance_to_data(a) for a in result.scalars().all()]


async def get_session_attendance(db: AsyncSession, session_id: int) -> List[AttendanceData]:
    result = await db.execute(
        select(Attendance)
        .where(Attendance.session_id == session_id)
        .order_by(Attendance.check_in_time.asc(), Attendance.id.asc())
    )
    return [_attendance_to_data(a) for a in result.scalars().all()]


async def get_attendance_count(db: AsyncSession, membership_id: int) -> int:
    """Number of check-ins made on one membership"""
    result = await db.execute(
        select(func.count(Attendance.id)).where(Attendance.membership_id == membership_id)
    )
    return result.scalar() or 0

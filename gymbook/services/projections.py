"""
Read-side enrichment: attaches names and schedule details to ledger rows.

Each ``enrich_*`` call issues one query per related table for the whole
batch instead of one per row, and never writes.
"""
from typing import Awaitable, Callable, Dict, Iterable, List, Set, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.logging_config import get_logger
from gymbook.crud.attendanceCrud import AttendanceData
from gymbook.crud.membershipsCrud import MembershipData
from gymbook.crud.paymentsCrud import PaymentData
from gymbook.crud.reservationsCrud import ReservationData
from gymbook.models import (
    Activity, ClassSession, Club, MembershipPlan, People, Reservation, UserMembership,
)

logger = get_logger("services.projections")

T = TypeVar("T")


def _ids(values: Iterable) -> Set[int]:
    return {v for v in values if v is not None}


async def _people_by_id(db: AsyncSession, ids: Set[int]) -> Dict[int, People]:
    if not ids:
        return {}
    result = await db.execute(select(People).where(People.id.in_(ids)))
    return {p.id: p for p in result.scalars().all()}


async def _clubs_by_id(db: AsyncSession, ids: Set[int]) -> Dict[int, Club]:
    if not ids:
        return {}
    result = await db.execute(select(Club).where(Club.id.in_(ids)))
    return {c.id: c for c in result.scalars().all()}


async def _sessions_with_activity(db: AsyncSession, ids: Set[int]) -> Dict[int, tuple]:
    """session id -> (ClassSession, activity name)"""
    if not ids:
        return {}
    result = await db.execute(
        select(ClassSession, Activity.name)
        .join(Activity, Activity.id == ClassSession.activity_id)
        .where(ClassSession.id.in_(ids))
    )
    return {session.id: (session, activity_name) for session, activity_name in result.all()}


async def _plan_names(db: AsyncSession, ids: Set[int]) -> Dict[int, str]:
    if not ids:
        return {}
    result = await db.execute(
        select(MembershipPlan.id, MembershipPlan.name).where(MembershipPlan.id.in_(ids))
    )
    return {plan_id: name for plan_id, name in result.all()}


async def enrich_reservations(db: AsyncSession, items: List[ReservationData]) -> List[ReservationData]:
    if not items:
        return items

    people = await _people_by_id(db, _ids(r.user_id for r in items))
    clubs = await _clubs_by_id(db, _ids(r.club_id for r in items))
    sessions = await _sessions_with_activity(db, _ids(r.session_id for r in items))

    for item in items:
        person = people.get(item.user_id)
        if person:
            item.user_name = person.full_name
            item.user_phone = person.phone_number
        club = clubs.get(item.club_id)
        if club:
            item.club_name = club.name
        if item.session_id in sessions:
            session, activity_name = sessions[item.session_id]
            item.activity_name = activity_name
            item.session_date = session.session_date
            item.start_time = session.start_time
            item.end_time = session.end_time
    return items


async def enrich_payments(db: AsyncSession, items: List[PaymentData]) -> List[PaymentData]:
    if not items:
        return items

    people = await _people_by_id(
        db, _ids(p.user_id for p in items) | _ids(p.recorded_by for p in items)
    )

    # Reservation payments are labelled with the activity, membership payments with the plan
    reservation_ids = _ids(p.reservation_id for p in items)
    activity_by_reservation: Dict[int, str] = {}
    if reservation_ids:
        result = await db.execute(
            select(Reservation.id, Activity.name)
            .join(ClassSession, ClassSession.id == Reservation.session_id)
            .join(Activity, Activity.id == ClassSession.activity_id)
            .where(Reservation.id.in_(reservation_ids))
        )
        activity_by_reservation = {rid: name for rid, name in result.all()}

    membership_ids = _ids(p.membership_id for p in items)
    plan_by_membership: Dict[int, str] = {}
    if membership_ids:
        result = await db.execute(
            select(UserMembership.id, MembershipPlan.name)
            .join(MembershipPlan, MembershipPlan.id == UserMembership.plan_id)
            .where(UserMembership.id.in_(membership_ids))
        )
        plan_by_membership = {mid: name for mid, name in result.all()}

    for item in items:
        person = people.get(item.user_id)
        if person:
            item.user_name = person.full_name
            item.user_phone = person.phone_number
        staff = people.get(item.recorded_by)
        if staff:
            item.recorded_by_name = staff.full_name
        if item.reservation_id is not None:
            item.activity_name = activity_by_reservation.get(item.reservation_id)
        if item.membership_id is not None:
            item.plan_name = plan_by_membership.get(item.membership_id)
    return items


async def enrich_memberships(db: AsyncSession, items: List[MembershipData]) -> List[MembershipData]:
    if not items:
        return items

    people = await _people_by_id(db, _ids(m.user_id for m in items))
    clubs = await _clubs_by_id(db, _ids(m.club_id for m in items))
    plans = await _plan_names(db, _ids(m.plan_id for m in items))

    for item in items:
        person = people.get(item.user_id)
        if person:
            item.user_name = person.full_name
            item.user_phone = person.phone_number
        club = clubs.get(item.club_id)
        if club:
            item.club_name = club.name
        item.plan_name = plans.get(item.plan_id)
    return items


async def enrich_attendance(db: AsyncSession, items: List[AttendanceData]) -> List[AttendanceData]:
    if not items:
        return items

    people = await _people_by_id(
        db, _ids(a.user_id for a in items) | _ids(a.recorded_by_user_id for a in items)
    )
    clubs = await _clubs_by_id(db, _ids(a.club_id for a in items))
    sessions = await _sessions_with_activity(db, _ids(a.session_id for a in items))

    for item in items:
        person = people.get(item.user_id)
        if person:
            item.user_name = person.full_name
            item.user_phone = person.phone_number
        staff = people.get(item.recorded_by_user_id)
        if staff:
            item.recorded_by_name = staff.full_name
        club = clubs.get(item.club_id)
        if club:
            item.club_name = club.name
        if item.session_id in sessions:
            item.activity_name = sessions[item.session_id][1]
    return items


async def enrich_committed(
    db: AsyncSession,
    enrich: Callable[[AsyncSession, List[T]], Awaitable[List[T]]],
    items: List[T],
) -> List[T]:
    """
    Enrich rows a mutation has already committed.

    The write stands either way, so a failed projection is logged and the
    rows go back without their related fields.
    """
    try:
        return await enrich(db, items)
    except Exception:
        logger.exception("Projection of %s committed row(s) failed", len(items))
        await db.rollback()
        return items

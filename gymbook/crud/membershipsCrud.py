"""
Membership lifecycle: request -> approve (with payment) / reject, then
suspend, resume, cancel and the daily expiry sweep.

Status changes are written as a compare-and-swap on the status column, so
two staff members acting on the same request cannot both win.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.errors import (
    BusinessRuleError, ConflictError, NotFoundError,
    INVALID_DATES, INVALID_STATUS, INVALID_TRANSITION, PLAN_CLUB_MISMATCH,
)
from gymbook.core.logging_config import get_logger
from gymbook.core.states import MembershipStatus, ensure_transition, parse_payment_method
from gymbook.core.timeutils import club_today, utcnow
from gymbook.crud.paymentsCrud import create_payment, validate_amount
from gymbook.db.postgresql import unit_of_work
from gymbook.models import MembershipPlan, UserMembership

logger = get_logger("crud.memberships")


@dataclass
class MembershipData:
    id: int
    user_id: int
    plan_id: int
    club_id: int
    start_date: date
    end_date: Optional[date]
    status: str
    payment_id: Optional[int]
    notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    # Related data, filled by services.projections
    club_name: Optional[str] = None
    plan_name: Optional[str] = None
    user_name: Optional[str] = None
    user_phone: Optional[str] = None


@dataclass
class MembershipValidation:
    is_valid: bool
    message: str
    membership: Optional[MembershipData] = None


def _membership_to_data(membership: UserMembership) -> MembershipData:
    return MembershipData(
        id=membership.id,
        user_id=membership.user_id,
        plan_id=membership.plan_id,
        club_id=membership.club_id,
        start_date=membership.start_date,
        end_date=membership.end_date,
        status=membership.status.value,
        payment_id=membership.payment_id,
        notes=membership.notes,
        created_at=membership.created_at,
        updated_at=membership.updated_at,
    )


async def load_membership(db: AsyncSession, membership_id: int) -> UserMembership:
    result = await db.execute(
        select(UserMembership)
        .where(UserMembership.id == membership_id)
        .execution_options(populate_existing=True)
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise NotFoundError("Membership", membership_id)
    return membership


async def _transition_membership(
    db: AsyncSession,
    membership: UserMembership,
    target: MembershipStatus,
    code: str = INVALID_TRANSITION,
    **values
) -> UserMembership:
    """Move to ``target`` only if the row still has the status we read."""
    ensure_transition(membership.status, target, code)
    result = await db.execute(
        update(UserMembership)
        .where(
            UserMembership.id == membership.id,
            UserMembership.status == membership.status,
        )
        .values(status=target, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "Membership %s changed concurrently (read status %s)",
            membership.id, membership.status.value,
        )
        raise ConflictError("Membership was updated concurrently. Please try again.")

    return await load_membership(db, membership.id)


async def request_membership(
    db: AsyncSession,
    *,
    user_id: int,
    plan_id: int,
    club_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    notes: Optional[str] = None,
    commit: bool = True
) -> MembershipData:
    """
    Create a PENDING membership request.

    When ``end_date`` is omitted it is derived from the plan's duration;
    a plan without a duration gives an unlimited membership.
    """
    start = start_date or club_today()

    async with unit_of_work(db, commit):
        plan = (await db.execute(
            select(MembershipPlan).where(MembershipPlan.id == plan_id)
        )).scalar_one_or_none()
        if not plan:
            raise NotFoundError("Membership plan", plan_id)
        if plan.club_id != club_id:
            raise BusinessRuleError("Membership plan does not belong to this club", PLAN_CLUB_MISMATCH)

        end = end_date
        if end is None and plan.duration_days:
            end = start + timedelta(days=plan.duration_days - 1)
        if end is not None and end < start:
            raise BusinessRuleError("End date cannot be before start date", INVALID_DATES)

        membership = UserMembership(
            user_id=user_id,
            plan_id=plan_id,
            club_id=club_id,
            start_date=start,
            end_date=end,
            status=MembershipStatus.PENDING,
            notes=notes,
        )
        db.add(membership)
        await db.flush()
        data = _membership_to_data(membership)

    logger.info("Membership requested: %s for user %s at club %s", data.id, user_id, club_id)
    return data


async def approve_membership(
    db: AsyncSession,
    membership_id: int,
    *,
    amount: object,
    method: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    approved_by: Optional[int] = None,
    commit: bool = True
) -> MembershipData:
    """
    Approve a PENDING membership: record its payment and activate it.

    The payment row and the status change commit together; ``start_date``
    moves to the approval day at the club. A request whose ``end_date`` has
    already passed is refused with INVALID_DATES before anything is billed.
    """
    amount_value = validate_amount(amount)
    payment_method = parse_payment_method(method)

    async with unit_of_work(db, commit):
        membership = await load_membership(db, membership_id)
        if membership.status != MembershipStatus.PENDING:
            raise BusinessRuleError("Only pending memberships can be approved", INVALID_STATUS)

        today = club_today()
        if membership.end_date is not None and membership.end_date < today:
            logger.warning(
                "Approval refused for membership %s: period ended on %s",
                membership_id, membership.end_date,
            )
            raise BusinessRuleError(
                "Membership period has already ended; request a new membership",
                INVALID_DATES,
            )

        payment = await create_payment(
            db,
            user_id=membership.user_id,
            club_id=membership.club_id,
            amount=amount_value,
            method=payment_method,
            membership_id=membership.id,
            reference_number=reference_number,
            recorded_by=approved_by,
            notes=notes,
        )
        membership = await _transition_membership(
            db,
            membership,
            MembershipStatus.ACTIVE,
            INVALID_STATUS,
            start_date=today,
            payment_id=payment.id,
        )
        data = _membership_to_data(membership)

    logger.info(
        "Membership approved: %s (payment %s) by staff %s",
        membership_id, data.payment_id, approved_by,
    )
    return data


async def reject_membership(
    db: AsyncSession,
    membership_id: int,
    *,
    reason: Optional[str] = None,
    rejected_by: Optional[int] = None,
    commit: bool = True
) -> MembershipData:
    async with unit_of_work(db, commit):
        membership = await load_membership(db, membership_id)
        if membership.status != MembershipStatus.PENDING:
            raise BusinessRuleError("Only pending memberships can be rejected", INVALID_STATUS)

        values = {"notes": reason} if reason else {}
        membership = await _transition_membership(
            db, membership, MembershipStatus.CANCELLED, INVALID_STATUS, **values
        )
        data = _membership_to_data(membership)

    logger.info("Membership rejected: %s by staff %s", membership_id, rejected_by)
    return data


async def suspend_membership(
    db: AsyncSession,
    membership_id: int,
    *,
    reason: Optional[str] = None,
    commit: bool = True
) -> MembershipData:
    async with unit_of_work(db, commit):
        membership = await load_membership(db, membership_id)
        values = {"notes": reason} if reason else {}
        membership = await _transition_membership(db, membership, MembershipStatus.SUSPENDED, **values)
        data = _membership_to_data(membership)

    logger.info("Membership suspended: %s", membership_id)
    return data


async def resume_membership(
    db: AsyncSession,
    membership_id: int,
    commit: bool = True
) -> MembershipData:
    """SUSPENDED -> ACTIVE; the end date is not extended"""
    async with unit_of_work(db, commit):
        membership = await load_membership(db, membership_id)
        if membership.status != MembershipStatus.SUSPENDED:
            raise BusinessRuleError("Only suspended memberships can be resumed", INVALID_STATUS)
        membership = await _transition_membership(db, membership, MembershipStatus.ACTIVE)
        data = _membership_to_data(membership)

    logger.info("Membership resumed: %s", membership_id)
    return data


async def cancel_membership(
    db: AsyncSession,
    membership_id: int,
    *,
    reason: Optional[str] = None,
    commit: bool = True
) -> MembershipData:
    async with unit_of_work(db, commit):
        membership = await load_membership(db, membership_id)
        values = {"notes": reason} if reason else {}
        membership = await _transition_membership(db, membership, MembershipStatus.CANCELLED, **values)
        data = _membership_to_data(membership)

    logger.info("Membership cancelled: %s", membership_id)
    return data


async def expire_old_memberships(
    db: AsyncSession,
    today: Optional[date] = None,
    commit: bool = True
) -> int:
    """
    Move every ACTIVE membership whose end date is before ``today`` to EXPIRED.

    Safe to run repeatedly: a second run finds nothing to change.
    Returns the number of memberships expired.
    """
    today = today or club_today()

    async with unit_of_work(db, commit):
        result = await db.execute(
            update(UserMembership)
            .where(
                UserMembership.status == MembershipStatus.ACTIVE,
                UserMembership.end_date.is_not(None),
                UserMembership.end_date < today,
            )
            .values(status=MembershipStatus.EXPIRED, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        count = result.rowcount or 0

    if count:
        logger.info("Expired %s memberships (cutoff %s)", count, today.isoformat())
    return count


async def validate_membership(
    db: AsyncSession,
    user_id: int,
    club_id: int,
    today: Optional[date] = None
) -> MembershipValidation:
    """
    Decide whether a user may enter a club today.

    Valid wins over expired, expired over suspended; an ACTIVE membership
    whose end date has passed counts as expired even before the sweep runs.
    """
    today = today or club_today()

    result = await db.execute(
        select(UserMembership)
        .where(
            UserMembership.user_id == user_id,
            UserMembership.club_id == club_id,
            UserMembership.status.in_([
                MembershipStatus.ACTIVE,
                MembershipStatus.EXPIRED,
                MembershipStatus.SUSPENDED,
            ]),
        )
        .order_by(UserMembership.start_date.desc(), UserMembership.id.desc())
    )
    memberships = result.scalars().all()

    expired = None
    suspended = None
    for membership in memberships:
        if membership.is_valid_on(today):
            return MembershipValidation(True, "Membership is valid", _membership_to_data(membership))
        if membership.status in (MembershipStatus.ACTIVE, MembershipStatus.EXPIRED):
            expired = expired or membership
        elif membership.status == MembershipStatus.SUSPENDED:
            suspended = suspended or membership

    if expired:
        return MembershipValidation(False, "Membership has expired", _membership_to_data(expired))
    if suspended:
        return MembershipValidation(False, "Membership is suspended", _membership_to_data(suspended))
    return MembershipValidation(False, "No active membership found")


async def get_membership_by_id(db: AsyncSession, membership_id: int) -> Optional[MembershipData]:
    result = await db.execute(select(UserMembership).where(UserMembership.id == membership_id))
    membership = result.scalar_one_or_none()
    return _membership_to_data(membership) if membership else None


async def get_user_memberships(db: AsyncSession, user_id: int) -> List[MembershipData]:
    """All memberships of a user, newest first"""
    result = await db.execute(
        select(UserMembership)
        .where(UserMembership.user_id == user_id)
        .order_by(UserMembership.created_at.desc(), UserMembership.id.desc())
    )
    return [_membership_to_data(m) for m in result.scalars().all()]


async def get_active_memberships(
    db: AsyncSession,
    user_id: int,
    club_id: Optional[int] = None,
    today: Optional[date] = None
) -> List[MembershipData]:
    """Memberships that are valid today, optionally limited to one club"""
    today = today or club_today()
    query = select(UserMembership).where(
        UserMembership.user_id == user_id,
        UserMembership.status == MembershipStatus.ACTIVE,
    )
    if club_id is not None:
        query = query.where(UserMembership.club_id == club_id)

    result = await db.execute(query.order_by(UserMembership.start_date.desc()))
    return [_membership_to_data(m) for m in result.scalars().all() if m.is_valid_on(today)]


async def get_pending_memberships(db: AsyncSession, club_id: int) -> List[MembershipData]:
    """Requests waiting for staff approval, oldest first"""
    result = await db.execute(
        select(UserMembership)
        .where(
            UserMembership.club_id == club_id,
            UserMembership.status == MembershipStatus.PENDING,
        )
        .order_by(UserMembership.created_at.asc(), UserMembership.id.asc())
    )
    return [_membership_to_data(m) for m in result.scalars().all()]


async def get_club_memberships(
    db: AsyncSession,
    club_id: int,
    status: Optional[MembershipStatus] = None,
    limit: int = 100,
    offset: int = 0
) -> List[MembershipData]:
    query = select(UserMembership).where(UserMembership.club_id == club_id)
    if status is not None:
        query = query.where(UserMembership.status == status)
    query = query.order_by(UserMembership.created_at.desc(), UserMembership.id.desc()).offset(offset).limit(limit)

    result = await db.execute(query)
    return [_membership_to_data(m) for m in result.scalars().all()]

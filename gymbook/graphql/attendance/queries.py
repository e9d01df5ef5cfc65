"""
GraphQL queries for attendance.
"""
from datetime import date
from typing import Optional, List

import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.errors import NotFoundError
from gymbook.crud.attendanceCrud import (
    get_today_attendance,
    get_attendance_by_date_range,
    get_user_attendance,
    get_session_attendance,
    get_attendance_count
)
from gymbook.crud.membershipsCrud import get_membership_by_id
from gymbook.crud.sessionCapacityCrud import read_session_capacity
from gymbook.graphql.attendance.types import Attendance
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import current_identity, require_self_or_staff, require_staff
from gymbook.services.projections import enrich_attendance


@strawberry.type
class AttendanceQuery:

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def today_attendance(self, info: Info, club_id: int) -> List[Attendance]:
        db: AsyncSession = info.context.db
        require_staff(info, club_id)

        items = await get_today_attendance(db, club_id)
        await enrich_attendance(db, items)
        return [Attendance.from_data(a) for a in items]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def attendance_by_date_range(
        self,
        info: Info,
        club_id: int,
        start_date: date,
        end_date: date
    ) -> List[Attendance]:
        db: AsyncSession = info.context.db
        require_staff(info, club_id)

        items = await get_attendance_by_date_range(db, club_id, start_date, end_date)
        await enrich_attendance(db, items)
        return [Attendance.from_data(a) for a in items]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def user_attendance(
        self,
        info: Info,
        user_id: Optional[int] = None,
        club_id: Optional[int] = None,
        limit: int = 100
    ) -> List[Attendance]:
        """Check-in history of a user; staff see only their clubs"""
        db: AsyncSession = info.context.db
        identity = current_identity(info)
        target = user_id or identity.user_id

        items = await get_user_attendance(db, target, club_id=club_id, limit=limit)
        if target != identity.user_id:
            items = [a for a in items if identity.is_staff_for_club(a.club_id)]
        await enrich_attendance(db, items)
        return [Attendance.from_data(a) for a in items]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def session_attendance(self, info: Info, session_id: int) -> List[Attendance]:
        db: AsyncSession = info.context.db

        session = await read_session_capacity(db, session_id)
        if session is None:
            raise NotFoundError("ClassSession", session_id)
        require_staff(info, session.club_id)

        items = await get_session_attendance(db, session_id)
        await enrich_attendance(db, items)
        return [Attendance.from_data(a) for a in items]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def attendance_count(self, info: Info, membership_id: int) -> int:
        """Number of check-ins made on a membership (owner or club staff)"""
        db: AsyncSession = info.context.db

        membership = await get_membership_by_id(db, membership_id)
        if not membership:
            raise NotFoundError("Membership", membership_id)
        require_self_or_staff(info, membership.user_id, membership.club_id)

        return await get_attendance_count(db, membership_id)

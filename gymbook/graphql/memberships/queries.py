"""
GraphQL queries for memberships.
"""
import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from gymbook.crud.membershipsCrud import (
    get_user_memberships,
    get_active_memberships,
    get_pending_memberships,
    validate_membership,
    MembershipData
)
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import current_identity, require_staff
from gymbook.graphql.memberships.types import Membership, MembershipValidationResult
from gymbook.services.projections import enrich_memberships


def _visible_to_caller(info: Info, user_id: int, items: List[MembershipData]) -> List[MembershipData]:
    """Members see all of their own memberships; staff only those of their clubs"""
    identity = current_identity(info)
    if user_id == identity.user_id:
        return items
    return [m for m in items if identity.is_staff_for_club(m.club_id)]


@strawberry.type
class MembershipQuery:

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def validate_membership(self, info: Info, user_id: int, club_id: int) -> MembershipValidationResult:
        """Can this user enter this club today? (staff only)"""
        db: AsyncSession = info.context.db
        require_staff(info, club_id)

        result = await validate_membership(db, user_id, club_id)
        return MembershipValidationResult.from_data(result)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def user_memberships(self, info: Info, user_id: Optional[int] = None) -> List[Membership]:
        db: AsyncSession = info.context.db
        target = user_id or current_identity(info).user_id

        items = _visible_to_caller(info, target, await get_user_memberships(db, target))
        await enrich_memberships(db, items)
        return [Membership.from_data(m) for m in items]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def active_memberships(
        self,
        info: Info,
        user_id: Optional[int] = None,
        club_id: Optional[int] = None
    ) -> List[Membership]:
        """Memberships valid today"""
        db: AsyncSession = info.context.db
        target = user_id or current_identity(info).user_id

        items = _visible_to_caller(info, target, await get_active_memberships(db, target, club_id=club_id))
        await enrich_memberships(db, items)
        return [Membership.from_data(m) for m in items]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def pending_memberships(self, info: Info, club_id: int) -> List[Membership]:
        """Requests waiting for approval (staff only)"""
        db: AsyncSession = info.context.db
        require_staff(info, club_id)

        items = await get_pending_memberships(db, club_id)
        await enrich_memberships(db, items)
        return [Membership.from_data(m) for m in items]

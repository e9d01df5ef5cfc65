"""
GraphQL mutations for memberships.
"""
from typing import Optional

import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.errors import NotFoundError
from gymbook.core.logging_config import get_logger
from gymbook.crud.membershipsCrud import (
    request_membership,
    approve_membership,
    reject_membership,
    suspend_membership,
    resume_membership,
    cancel_membership,
    get_membership_by_id,
    MembershipData
)
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import (
    INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE,
    current_identity, error_code, require_staff,
)
from gymbook.graphql.memberships.types import (
    ApproveMembershipInput,
    Membership,
    MembershipResponse,
    MembershipStatusInput,
    RequestMembershipInput
)
from gymbook.services.projections import enrich_committed, enrich_memberships

logger = get_logger("graphql.memberships")


async def _staff_membership(info: Info, membership_id: int) -> MembershipData:
    """Load a membership and require the caller to be staff of its club"""
    membership = await get_membership_by_id(info.context.db, membership_id)
    if not membership:
        raise NotFoundError("Membership", membership_id)
    require_staff(info, membership.club_id)
    return membership


async def _success(db: AsyncSession, data: MembershipData, message: str) -> MembershipResponse:
    await enrich_committed(db, enrich_memberships, [data])
    return MembershipResponse(success=True, membership=Membership.from_data(data), message=message)


def _failure(message: str, code: Optional[str]) -> MembershipResponse:
    return MembershipResponse(success=False, membership=None, message=message, error_code=code)


@strawberry.type
class MembershipMutation:

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def request_membership(self, info: Info, input: RequestMembershipInput) -> MembershipResponse:
        """Ask for a membership; it stays PENDING until staff approve it"""
        db: AsyncSession = info.context.db
        identity = current_identity(info)

        try:
            user_id = input.user_id or identity.user_id
            if user_id != identity.user_id:
                require_staff(info, input.club_id)

            data = await request_membership(
                db,
                user_id=user_id,
                plan_id=input.plan_id,
                club_id=input.club_id,
                start_date=input.start_date,
                end_date=input.end_date,
                notes=input.notes
            )
            return await _success(db, data, "Membership requested successfully")

        except ValueError as e:
            await db.rollback()
            return _failure(str(e), error_code(e))
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error requesting membership")
            return _failure(UNEXPECTED_ERROR_MESSAGE, INTERNAL_ERROR)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def approve_membership(self, info: Info, input: ApproveMembershipInput) -> MembershipResponse:
        """Record the membership payment and activate it (staff only)"""
        db: AsyncSession = info.context.db

        try:
            await _staff_membership(info, input.membership_id)
            data = await approve_membership(
                db,
                input.membership_id,
                amount=input.amount,
                method=input.method,
                reference_number=input.reference_number,
                notes=input.notes,
                approved_by=current_identity(info).user_id
            )
            return await _success(db, data, "Membership approved successfully")

        except ValueError as e:
            await db.rollback()
            return _failure(str(e), error_code(e))
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error approving membership %s", input.membership_id)
            return _failure(UNEXPECTED_ERROR_MESSAGE, INTERNAL_ERROR)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def reject_membership(self, info: Info, input: MembershipStatusInput) -> MembershipResponse:
        """Reject a pending request (staff only)"""
        db: AsyncSession = info.context.db

        try:
            await _staff_membership(info, input.membership_id)
            data = await reject_membership(
                db,
                input.membership_id,
                reason=input.reason,
                rejected_by=current_identity(info).user_id
            )
            return await _success(db, data, "Membership rejected")

        except ValueError as e:
            await db.rollback()
            return _failure(str(e), error_code(e))
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error rejecting membership %s", input.membership_id)
            return _failure(UNEXPECTED_ERROR_MESSAGE, INTERNAL_ERROR)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def suspend_membership(self, info: Info, input: MembershipStatusInput) -> MembershipResponse:
        db: AsyncSession = info.context.db

        try:
            await _staff_membership(info, input.membership_id)
            data = await suspend_membership(db, input.membership_id, reason=input.reason)
            return await _success(db, data, "Membership suspended")

        except ValueError as e:
            await db.rollback()
            return _failure(str(e), error_code(e))
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error suspending membership %s", input.membership_id)
            return _failure(UNEXPECTED_ERROR_MESSAGE, INTERNAL_ERROR)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def resume_membership(self, info: Info, membership_id: int) -> MembershipResponse:
        db: AsyncSession = info.context.db

        try:
            await _staff_membership(info, membership_id)
            data = await resume_membership(db, membership_id)
            return await _success(db, data, "Membership resumed")

        except ValueError as e:
            await db.rollback()
            return _failure(str(e), error_code(e))
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error resuming membership %s", membership_id)
            return _failure(UNEXPECTED_ERROR_MESSAGE, INTERNAL_ERROR)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def cancel_membership(self, info: Info, input: MembershipStatusInput) -> MembershipResponse:
        db: AsyncSession = info.context.db

        try:
            await _staff_membership(info, input.membership_id)
            data = await cancel_membership(db, input.membership_id, reason=input.reason)
            return await _success(db, data, "Membership cancelled")

        except ValueError as e:
            await db.rollback()
            return _failure(str(e), error_code(e))
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error cancelling membership %s", input.membership_id)
            return _failure(UNEXPECTED_ERROR_MESSAGE, INTERNAL_ERROR)

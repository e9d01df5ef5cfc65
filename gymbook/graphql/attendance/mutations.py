"""
GraphQL mutations for attendance.
"""
import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.logging_config import get_logger
from gymbook.crud.attendanceCrud import record_check_in
from gymbook.graphql.attendance.types import Attendance, AttendanceResponse, CheckInInput
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import (
    INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE, error_code, require_staff,
)
from gymbook.services.projections import enrich_attendance, enrich_committed

logger = get_logger("graphql.attendance")


@strawberry.type
class AttendanceMutation:

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def check_in(self, info: Info, input: CheckInInput) -> AttendanceResponse:
        """Record a member entering the club (staff only)"""
        db: AsyncSession = info.context.db

        try:
            staff = require_staff(info, input.club_id)
            attendance_data = await record_check_in(
                db,
                user_id=input.user_id,
                membership_id=input.membership_id,
                club_id=input.club_id,
                session_id=input.session_id,
                recorded_by=staff.user_id,
                notes=input.notes
            )
            await enrich_committed(db, enrich_attendance, [attendance_data])

            return AttendanceResponse(
                success=True,
                attendance=Attendance.from_data(attendance_data),
                message="Check-in recorded"
            )

        except ValueError as e:
            await db.rollback()
            return AttendanceResponse(
                success=False,
                attendance=None,
                message=str(e),
                error_code=error_code(e)
            )
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error recording check-in for user %s", input.user_id)
            return AttendanceResponse(
                success=False,
                attendance=None,
                message=UNEXPECTED_ERROR_MESSAGE,
                error_code=INTERNAL_ERROR
            )

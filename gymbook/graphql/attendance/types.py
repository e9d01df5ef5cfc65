"""
GraphQL types for attendance.
"""
from datetime import datetime
from typing import Optional
import strawberry

from gymbook.crud.attendanceCrud import AttendanceData


@strawberry.type
class Attendance:
    id: int
    user_id: int
    membership_id: int
    club_id: int
    session_id: Optional[int]
    check_in_time: datetime
    recorded_by_user_id: Optional[int]
    notes: Optional[str]

    # Related data
    user_name: Optional[str]
    user_phone: Optional[str]
    club_name: Optional[str]
    activity_name: Optional[str]
    recorded_by_name: Optional[str]

    @classmethod
    def from_data(cls, data: AttendanceData) -> "Attendance":
        return cls(
            id=data.id,
            user_id=data.user_id,
            membership_id=data.membership_id,
            club_id=data.club_id,
            session_id=data.session_id,
            check_in_time=data.check_in_time,
            recorded_by_user_id=data.recorded_by_user_id,
            notes=data.notes,
            user_name=data.user_name,
            user_phone=data.user_phone,
            club_name=data.club_name,
            activity_name=data.activity_name,
            recorded_by_name=data.recorded_by_name
        )


@strawberry.input
class CheckInInput:
    user_id: int
    membership_id: int
    club_id: int
    session_id: Optional[int] = None
    notes: Optional[str] = None


@strawberry.type
class AttendanceResponse:
    success: bool
    attendance: Optional[Attendance]
    message: str
    error_code: Optional[str] = None

"""
GraphQL types for reservations and session availability.
"""
from datetime import date, datetime, time
from typing import Optional
import strawberry

from gymbook.crud.reservationsCrud import ReservationData
from gymbook.crud.sessionCapacityCrud import SessionCapacityData


@strawberry.type
class Reservation:
    """Reservation GraphQL type"""
    id: int
    user_id: int
    session_id: int
    club_id: int
    status: str
    booked_at: datetime
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    checked_in_at: Optional[datetime]
    version: int

    # Related data
    user_name: Optional[str]
    user_phone: Optional[str]
    club_name: Optional[str]
    activity_name: Optional[str]
    session_date: Optional[date]
    start_time: Optional[time]
    end_time: Optional[time]

    @classmethod
    def from_data(cls, data: ReservationData) -> "Reservation":
        return cls(
            id=data.id,
            user_id=data.user_id,
            session_id=data.session_id,
            club_id=data.club_id,
            status=data.status,
            booked_at=data.booked_at,
            cancelled_at=data.cancelled_at,
            cancellation_reason=data.cancellation_reason,
            checked_in_at=data.checked_in_at,
            version=data.version,
            user_name=data.user_name,
            user_phone=data.user_phone,
            club_name=data.club_name,
            activity_name=data.activity_name,
            session_date=data.session_date,
            start_time=data.start_time,
            end_time=data.end_time
        )


@strawberry.type
class SessionAvailability:
    """Seat counter of a class session"""
    session_id: int
    club_id: int
    session_date: date
    start_time: time
    end_time: time
    capacity: int
    booked_count: int
    available_spots: int
    status: str

    @classmethod
    def from_data(cls, data: SessionCapacityData) -> "SessionAvailability":
        return cls(
            session_id=data.id,
            club_id=data.club_id,
            session_date=data.session_date,
            start_time=data.start_time,
            end_time=data.end_time,
            capacity=data.capacity,
            booked_count=data.booked_count,
            available_spots=data.available_spots,
            status=data.status.value
        )


@strawberry.input
class CreateReservationInput:
    """Input for creating a reservation; staff may book on behalf of ``user_id``"""
    session_id: int
    user_id: Optional[int] = None


@strawberry.input
class CancelReservationInput:
    reservation_id: int
    reason: Optional[str] = None


@strawberry.type
class ReservationResponse:
    """Response for reservation operations"""
    success: bool
    reservation: Optional[Reservation]
    message: str
    error_code: Optional[str] = None

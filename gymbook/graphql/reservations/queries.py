"""
GraphQL queries for reservations.
"""
import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from gymbook.core.errors import NotFoundError
from gymbook.core.states import ReservationStatus
from gymbook.crud.reservationsCrud import (
    get_reservation_by_id,
    get_reservation_for_requester,
    get_user_reservations,
    get_club_reservations
)
from gymbook.crud.sessionCapacityCrud import read_session_capacity
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import current_identity, error_code, require_staff
from gymbook.graphql.reservations.types import (
    Reservation,
    ReservationResponse,
    SessionAvailability
)
from gymbook.services.projections import enrich_reservations


@strawberry.type
class ReservationQuery:
    """Reservation queries"""

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def reservation(
        self,
        info: Info,
        id: int
    ) -> ReservationResponse:
        """Get a reservation by ID (owner or club staff)"""
        db: AsyncSession = info.context.db
        identity = current_identity(info)

        try:
            existing = await get_reservation_by_id(db, id)
            if not existing:
                raise NotFoundError("Reservation", id)

            reservation_data = await get_reservation_for_requester(
                db,
                id,
                requester_id=identity.user_id,
                is_staff=identity.is_staff_for_club(existing.club_id)
            )
            await enrich_reservations(db, [reservation_data])

            return ReservationResponse(
                success=True,
                reservation=Reservation.from_data(reservation_data),
                message="OK"
            )
        except ValueError as e:
            return ReservationResponse(
                success=False,
                reservation=None,
                message=str(e),
                error_code=error_code(e)
            )

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def my_reservations(
        self,
        info: Info,
        active_only: bool = False,
        limit: int = 100,
        offset: int = 0
    ) -> List[Reservation]:
        """Reservations of the caller, newest first"""
        db: AsyncSession = info.context.db
        identity = current_identity(info)

        reservations_data = await get_user_reservations(
            db, identity.user_id, active_only=active_only, limit=limit, offset=offset
        )
        await enrich_reservations(db, reservations_data)
        return [Reservation.from_data(r) for r in reservations_data]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def club_reservations(
        self,
        info: Info,
        club_id: int,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Reservation]:
        """Reservations of a club (staff only)"""
        db: AsyncSession = info.context.db
        require_staff(info, club_id)

        status_filter = ReservationStatus(status.upper()) if status else None
        reservations_data = await get_club_reservations(
            db, club_id, status=status_filter, limit=limit, offset=offset
        )
        await enrich_reservations(db, reservations_data)
        return [Reservation.from_data(r) for r in reservations_data]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def session_availability(
        self,
        info: Info,
        session_id: int
    ) -> Optional[SessionAvailability]:
        """Capacity, booked seats and remaining seats of a session"""
        db: AsyncSession = info.context.db

        session = await read_session_capacity(db, session_id)
        return SessionAvailability.from_data(session) if session else None

"""
GraphQL mutations for reservations.
"""
import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.errors import NotFoundError
from gymbook.core.logging_config import get_logger
from gymbook.crud.reservationsCrud import (
    create_reservation,
    cancel_reservation,
    check_in_reservation,
    get_reservation_by_id
)
from gymbook.crud.sessionCapacityCrud import read_session_capacity
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import (
    INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE,
    current_identity, error_code, require_staff,
)
from gymbook.graphql.reservations.types import (
    CancelReservationInput,
    CreateReservationInput,
    Reservation,
    ReservationResponse
)
from gymbook.services.projections import enrich_committed, enrich_reservations

logger = get_logger("graphql.reservations")


@strawberry.type
class ReservationMutation:
    """Reservation mutations"""

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def create_reservation(
        self,
        info: Info,
        input: CreateReservationInput
    ) -> ReservationResponse:
        """Book a seat on a class session"""
        db: AsyncSession = info.context.db
        identity = current_identity(info)

        try:
            user_id = input.user_id or identity.user_id
            if user_id != identity.user_id:
                session = await read_session_capacity(db, input.session_id)
                if session is None:
                    raise NotFoundError("ClassSession", input.session_id)
                require_staff(info, session.club_id)

            reservation_data = await create_reservation(
                db=db,
                user_id=user_id,
                session_id=input.session_id
            )
            await enrich_committed(db, enrich_reservations, [reservation_data])

            return ReservationResponse(
                success=True,
                reservation=Reservation.from_data(reservation_data),
                message="Reservation created successfully"
            )

        except ValueError as e:
            await db.rollback()
            return ReservationResponse(
                success=False,
                reservation=None,
                message=str(e),
                error_code=error_code(e)
            )
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error creating reservation")
            return ReservationResponse(
                success=False,
                reservation=None,
                message=UNEXPECTED_ERROR_MESSAGE,
                error_code=INTERNAL_ERROR
            )

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def cancel_reservation(
        self,
        info: Info,
        input: CancelReservationInput
    ) -> ReservationResponse:
        """Cancel a reservation and release its seat"""
        db: AsyncSession = info.context.db
        identity = current_identity(info)

        try:
            existing = await get_reservation_by_id(db, input.reservation_id)
            if not existing:
                raise NotFoundError("Reservation", input.reservation_id)

            reservation_data = await cancel_reservation(
                db,
                input.reservation_id,
                requester_id=identity.user_id,
                reason=input.reason,
                is_staff=identity.is_staff_for_club(existing.club_id)
            )
            await enrich_committed(db, enrich_reservations, [reservation_data])

            return ReservationResponse(
                success=True,
                reservation=Reservation.from_data(reservation_data),
                message="Reservation cancelled successfully"
            )

        except ValueError as e:
            await db.rollback()
            return ReservationResponse(
                success=False,
                reservation=None,
                message=str(e),
                error_code=error_code(e)
            )
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error cancelling reservation %s", input.reservation_id)
            return ReservationResponse(
                success=False,
                reservation=None,
                message=UNEXPECTED_ERROR_MESSAGE,
                error_code=INTERNAL_ERROR
            )

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def check_in_reservation(
        self,
        info: Info,
        reservation_id: int
    ) -> ReservationResponse:
        """Mark a paid reservation as checked in (staff only)"""
        db: AsyncSession = info.context.db

        try:
            existing = await get_reservation_by_id(db, reservation_id)
            if not existing:
                raise NotFoundError("Reservation", reservation_id)
            require_staff(info, existing.club_id)

            reservation_data = await check_in_reservation(db, reservation_id)
            await enrich_committed(db, enrich_reservations, [reservation_data])

            return ReservationResponse(
                success=True,
                reservation=Reservation.from_data(reservation_data),
                message="Check-in successful"
            )

        except ValueError as e:
            await db.rollback()
            return ReservationResponse(
                success=False,
                reservation=None,
                message=str(e),
                error_code=error_code(e)
            )
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error checking in reservation %s", reservation_id)
            return ReservationResponse(
                success=False,
                reservation=None,
                message=UNEXPECTED_ERROR_MESSAGE,
                error_code=INTERNAL_ERROR
            )

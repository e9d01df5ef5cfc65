"""
GraphQL queries for payments.
"""
import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from gymbook.core.errors import NotFoundError
from gymbook.crud.paymentsCrud import get_club_payments, get_payment_by_reservation
from gymbook.crud.reservationsCrud import get_pending_payment_reservations, get_reservation_by_id
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import require_self_or_staff, require_staff
from gymbook.graphql.payments.types import Payment
from gymbook.graphql.reservations.types import Reservation
from gymbook.services.projections import enrich_payments, enrich_reservations


@strawberry.type
class PaymentQuery:

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def payment_by_reservation(self, info: Info, reservation_id: int) -> Optional[Payment]:
        """Payment settling a reservation (owner or club staff)"""
        db: AsyncSession = info.context.db

        reservation = await get_reservation_by_id(db, reservation_id)
        if not reservation:
            raise NotFoundError("Reservation", reservation_id)
        require_self_or_staff(info, reservation.user_id, reservation.club_id)

        payment_data = await get_payment_by_reservation(db, reservation_id)
        if not payment_data:
            return None
        await enrich_payments(db, [payment_data])
        return Payment.from_data(payment_data)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def pending_payments(self, info: Info, club_id: int) -> List[Reservation]:
        """Reservations still waiting for payment at a club (staff only)"""
        db: AsyncSession = info.context.db
        require_staff(info, club_id)

        reservations_data = await get_pending_payment_reservations(db, club_id)
        await enrich_reservations(db, reservations_data)
        return [Reservation.from_data(r) for r in reservations_data]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def payment_history(
        self,
        info: Info,
        club_id: int,
        limit: int = 100,
        offset: int = 0
    ) -> List[Payment]:
        """Payments recorded at a club, newest first (staff only)"""
        db: AsyncSession = info.context.db
        require_staff(info, club_id)

        payments_data = await get_club_payments(db, club_id, limit=limit, offset=offset)
        await enrich_payments(db, payments_data)
        return [Payment.from_data(p) for p in payments_data]

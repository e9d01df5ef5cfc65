"""
GraphQL mutations for payments.
"""
import strawberry
from strawberry.types import Info
from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.errors import NotFoundError
from gymbook.core.logging_config import get_logger
from gymbook.crud.paymentsCrud import record_payment
from gymbook.crud.reservationsCrud import get_reservation_by_id
from gymbook.graphql.auth.permissions import IsAuthenticated
from gymbook.graphql.common import (
    INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE, error_code, require_staff,
)
from gymbook.graphql.payments.types import Payment, PaymentResponse, RecordPaymentInput
from gymbook.services.projections import enrich_committed, enrich_payments

logger = get_logger("graphql.payments")


@strawberry.type
class PaymentMutation:

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def record_payment(self, info: Info, input: RecordPaymentInput) -> PaymentResponse:
        """Record a reservation payment and mark the reservation PAID (staff only)"""
        db: AsyncSession = info.context.db

        try:
            reservation = await get_reservation_by_id(db, input.reservation_id)
            if not reservation:
                raise NotFoundError("Reservation", input.reservation_id)
            staff = require_staff(info, reservation.club_id)

            payment_data = await record_payment(
                db,
                reservation_id=input.reservation_id,
                amount=input.amount,
                method=input.method,
                reference_number=input.reference_number,
                notes=input.notes,
                recorded_by=staff.user_id
            )
            await enrich_committed(db, enrich_payments, [payment_data])

            return PaymentResponse(
                success=True,
                payment=Payment.from_data(payment_data),
                message="Payment recorded successfully"
            )

        except ValueError as e:
            await db.rollback()
            return PaymentResponse(
                success=False,
                payment=None,
                message=str(e),
                error_code=error_code(e)
            )
        except Exception:
            await db.rollback()
            logger.exception("Unexpected error recording payment for reservation %s", input.reservation_id)
            return PaymentResponse(
                success=False,
                payment=None,
                message=UNEXPECTED_ERROR_MESSAGE,
                error_code=INTERNAL_ERROR
            )

"""
GraphQL types for the payment ledger.
"""
from datetime import datetime
from typing import Optional
import strawberry

from gymbook.crud.paymentsCrud import PaymentData


@strawberry.type
class Payment:
    id: int
    reservation_id: Optional[int]
    membership_id: Optional[int]
    user_id: int
    club_id: int
    amount: float
    currency: str
    method: str
    reference_number: Optional[str]
    status: str
    paid_at: Optional[datetime]
    recorded_by: Optional[int]
    notes: Optional[str]
    payment_type: str

    # Related data
    user_name: Optional[str]
    user_phone: Optional[str]
    recorded_by_name: Optional[str]
    activity_name: Optional[str]
    plan_name: Optional[str]

    @classmethod
    def from_data(cls, data: PaymentData) -> "Payment":
        return cls(
            id=data.id,
            reservation_id=data.reservation_id,
            membership_id=data.membership_id,
            user_id=data.user_id,
            club_id=data.club_id,
            amount=float(data.amount),
            currency=data.currency,
            method=data.method,
            reference_number=data.reference_number,
            status=data.status,
            paid_at=data.paid_at,
            recorded_by=data.recorded_by,
            notes=data.notes,
            payment_type=data.payment_type,
            user_name=data.user_name,
            user_phone=data.user_phone,
            recorded_by_name=data.recorded_by_name,
            activity_name=data.activity_name,
            plan_name=data.plan_name
        )


@strawberry.input
class RecordPaymentInput:
    reservation_id: int
    amount: float
    method: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None


@strawberry.type
class PaymentResponse:
    success: bool
    payment: Optional[Payment]
    message: str
    error_code: Optional[str] = None

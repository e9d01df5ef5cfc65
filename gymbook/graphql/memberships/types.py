"""
GraphQL types for memberships.
"""
from datetime import date, datetime
from typing import Optional
import strawberry

from gymbook.crud.membershipsCrud import MembershipData, MembershipValidation


@strawberry.type
class Membership:
    id: int
    user_id: int
    plan_id: int
    club_id: int
    start_date: date
    end_date: Optional[date]
    status: str
    payment_id: Optional[int]
    notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    # Related data
    club_name: Optional[str]
    plan_name: Optional[str]
    user_name: Optional[str]
    user_phone: Optional[str]

    @classmethod
    def from_data(cls, data: MembershipData) -> "Membership":
        return cls(
            id=data.id,
            user_id=data.user_id,
            plan_id=data.plan_id,
            club_id=data.club_id,
            start_date=data.start_date,
            end_date=data.end_date,
            status=data.status,
            payment_id=data.payment_id,
            notes=data.notes,
            created_at=data.created_at,
            updated_at=data.updated_at,
            club_name=data.club_name,
            plan_name=data.plan_name,
            user_name=data.user_name,
            user_phone=data.user_phone
        )


@strawberry.type
class MembershipValidationResult:
    valid: bool
    message: str
    membership_id: Optional[int] = None
    plan_id: Optional[int] = None
    end_date: Optional[date] = None
    status: Optional[str] = None

    @classmethod
    def from_data(cls, data: MembershipValidation) -> "MembershipValidationResult":
        membership = data.membership
        return cls(
            valid=data.is_valid,
            message=data.message,
            membership_id=membership.id if membership else None,
            plan_id=membership.plan_id if membership else None,
            end_date=membership.end_date if membership else None,
            status=membership.status if membership else None
        )


@strawberry.input
class RequestMembershipInput:
    """Staff may request on behalf of ``user_id``; members request for themselves"""
    plan_id: int
    club_id: int
    user_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


@strawberry.input
class ApproveMembershipInput:
    membership_id: int
    amount: float
    method: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None


@strawberry.input
class MembershipStatusInput:
    membership_id: int
    reason: Optional[str] = None


@strawberry.type
class MembershipResponse:
    success: bool
    membership: Optional[Membership]
    message: str
    error_code: Optional[str] = None

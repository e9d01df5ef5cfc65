"""
Membership and payment ledgers.
"""
from datetime import datetime, date, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    Date, Enum, ForeignKey, BigInteger, Numeric, String, Text,
    CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP

from gymbook.core.states import MembershipStatus, PaymentMethod, PaymentStatus
from gymbook.db.postgresql import Base, BigIntPK


class UserMembership(Base):
    """A user's access grant to a club; ``end_date`` NULL means unlimited"""

    __tablename__ = "user_memberships"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("people.id"), nullable=False)
    plan_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("membership_plans.id"), nullable=False)
    club_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("clubs.id"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    status: Mapped[MembershipStatus] = mapped_column(
        Enum(MembershipStatus, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        default=MembershipStatus.PENDING,
    )
    payment_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))

    __table_args__ = (
        Index("idx_memberships_user_club", "user_id", "club_id", "status"),
        Index("idx_memberships_status_end", "status", "end_date"),
    )

    def is_valid_on(self, today: date) -> bool:
        if self.status != MembershipStatus.ACTIVE:
            return False
        return self.end_date is None or today <= self.end_date


class Payment(Base):
    """One row per settlement event, paying for exactly one reservation or membership"""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    reservation_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("reservations.id"), unique=True)
    membership_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("user_memberships.id"), unique=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("people.id"), nullable=False)
    club_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("clubs.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, native_enum=False, length=20, validate_strings=True),
        nullable=False,
    )
    reference_number: Mapped[Optional[str]] = mapped_column(String(120))
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    recorded_by: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("people.id"))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "(reservation_id IS NULL) <> (membership_id IS NULL)",
            name="ck_payment_single_target",
        ),
        Index("idx_payments_club_paidat", "club_id", "paid_at"),
    )

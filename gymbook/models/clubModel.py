"""
Catalog models: clubs, activities and membership plans.
Produced by the catalog side of the system; the booking core only reads them.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import ForeignKey, Integer, BigInteger, Numeric, String, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from gymbook.db.postgresql import Base, BigIntPK

if TYPE_CHECKING:
    from gymbook.models.classModel import ClassSession


class Club(Base):
    """Gym / club"""

    __tablename__ = "clubs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class Activity(Base):
    """Activity offered by a club (yoga, spinning, ...)"""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    club_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("clubs.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    sessions: Mapped[List["ClassSession"]] = relationship(back_populates="activity")


class MembershipPlan(Base):
    """Plan descriptor; ``duration_days`` NULL means unlimited"""

    __tablename__ = "membership_plans"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    club_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("clubs.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    duration_days: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        CheckConstraint("duration_days IS NULL OR duration_days > 0", name="ck_plan_duration"),
    )

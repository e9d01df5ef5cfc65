"""
Append-only attendance log.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import ForeignKey, BigInteger, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP

from gymbook.db.postgresql import Base, BigIntPK


class Attendance(Base):
    """Check-in event, written once after membership validity is confirmed"""

    __tablename__ = "attendances"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("people.id"), nullable=False)
    membership_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("user_memberships.id"), nullable=False)
    club_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("clubs.id"), nullable=False)
    session_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("class_sessions.id"))
    check_in_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    recorded_by_user_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("people.id"))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_attendance_club_time", "club_id", "check_in_time"),
        Index("idx_attendance_membership", "membership_id"),
    )

"""
Class session and reservation models.

``ClassSession.booked_count``/``version`` are written only by the seat
claim/release compare-and-swap in ``crud/sessionCapacityCrud.py``;
``Reservation.version`` only by the reservation transitions in
``crud/reservationsCrud.py`` and ``crud/paymentsCrud.py``.
"""
from datetime import datetime, date, time, timezone
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import (
    Date, Time, Enum, ForeignKey, Integer, BigInteger, Text,
    CheckConstraint, Index, text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from gymbook.core.states import SessionStatus, ReservationStatus
from gymbook.db.postgresql import Base, BigIntPK

if TYPE_CHECKING:
    from gymbook.models.clubModel import Activity


class ClassSession(Base):
    """Individual class instance with a fixed capacity and a versioned seat counter"""

    __tablename__ = "class_sessions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    club_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("clubs.id"), nullable=False)
    activity_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("activities.id"), nullable=False)
    trainer_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("people.id"))
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    booked_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        default=SessionStatus.SCHEDULED,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    activity: Mapped["Activity"] = relationship(back_populates="sessions")
    reservations: Mapped[List["Reservation"]] = relationship(back_populates="session")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_session_capacity"),
        CheckConstraint("booked_count >= 0 AND booked_count <= capacity", name="ck_session_booked_range"),
        Index("idx_sessions_club_date", "club_id", "session_date"),
    )


class Reservation(Base):
    """One row per successful seat claim; never deleted, only transitioned"""

    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("people.id"), nullable=False)
    session_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("class_sessions.id"), nullable=False)
    club_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("clubs.id"), nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        default=ReservationStatus.PENDING_PAYMENT,
    )
    booked_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    session: Mapped["ClassSession"] = relationship(back_populates="reservations")

    __table_args__ = (
        # Backstop for the duplicate-booking check: one live reservation per user and session
        Index(
            "uq_reservations_user_session_live", "user_id", "session_id",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
        Index("idx_reservations_session", "session_id", "status"),
        Index("idx_reservations_club", "club_id", "status"),
        Index("idx_reservations_user", "user_id", "booked_at"),
    )

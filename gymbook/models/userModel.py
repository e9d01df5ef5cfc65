"""
People known to the booking core.
Identity and roles live with the identity provider; this table only carries
what the read-side projection shows next to bookings and payments.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import BigInteger, String, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP

from gymbook.db.postgresql import Base, BigIntPK


class People(Base):
    """Members, trainers and staff"""

    __tablename__ = "people"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    phone_number: Mapped[Optional[str]] = mapped_column(String(32))
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_people_phone", "phone_number"),
    )

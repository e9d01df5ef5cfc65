from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from gymbook.core.config import CLUB_TIMEZONE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def club_today() -> date:
    """Calendar date at the club, used for every membership window check."""
    return datetime.now(ZoneInfo(CLUB_TIMEZONE)).date()

"""
Helpers shared by the resolvers: caller identity, staff checks and the
``errorCode`` reported in response envelopes.
"""
from typing import Optional

from strawberry.types import Info

from gymbook.core.errors import ForbiddenError
from gymbook.core.logging_config import log_security_event
from gymbook.security.identity import Identity

INVALID_INPUT = "INVALID_INPUT"
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_ERROR_MESSAGE = "Unexpected error. Please try again later."


def current_identity(info: Info) -> Identity:
    return info.context.identity


def require_staff(info: Info, club_id: Optional[int]) -> Identity:
    """Raise ForbiddenError unless the caller is staff of ``club_id``"""
    identity = current_identity(info)
    if not identity.is_staff_for_club(club_id):
        log_security_event(
            "staff_check_denied",
            f"user {identity.user_id} is not staff for club {club_id}",
        )
        raise ForbiddenError("Staff access to this club is required")
    return identity


def require_self_or_staff(info: Info, user_id: int, club_id: Optional[int]) -> Identity:
    identity = current_identity(info)
    if identity.user_id == user_id:
        return identity
    return require_staff(info, club_id)


def error_code(error: ValueError) -> str:
    return getattr(error, "code", None) or INVALID_INPUT

"""
Error taxonomy for the booking core.

All errors derive from ValueError so resolvers can keep a single
``except ValueError`` branch for business failures, while ``code`` gives
callers something machine-readable.
"""
from typing import Optional


class BookingError(ValueError):
    code = "BOOKING_ERROR"
    retryable = False

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class NotFoundError(BookingError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class BusinessRuleError(BookingError):
    """A rule rejected the request; retrying with the same input will fail again."""

    def __init__(self, message: str, code: str):
        super().__init__(message, code)


class ConflictError(BookingError):
    """Optimistic version mismatch or a lost race on a unique backstop."""

    code = "CONFLICT"
    retryable = True


class ForbiddenError(BookingError):
    code = "FORBIDDEN"


SESSION_FULL = "SESSION_FULL"
SESSION_UNAVAILABLE = "SESSION_UNAVAILABLE"
ALREADY_BOOKED = "ALREADY_BOOKED"
CANNOT_CANCEL = "CANNOT_CANCEL"
CANNOT_CHECK_IN = "CANNOT_CHECK_IN"
PAYMENT_EXISTS = "PAYMENT_EXISTS"
INVALID_STATUS = "INVALID_STATUS"
INVALID_AMOUNT = "INVALID_AMOUNT"
INVALID_METHOD = "INVALID_METHOD"
INVALID_TRANSITION = "INVALID_TRANSITION"
MEMBERSHIP_INVALID = "MEMBERSHIP_INVALID"
PLAN_CLUB_MISMATCH = "PLAN_CLUB_MISMATCH"
INVALID_DATES = "INVALID_DATES"

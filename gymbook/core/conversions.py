"""Coercion of loosely typed values (JWT claims, GraphQL floats) into domain types."""

from decimal import Decimal, InvalidOperation
from typing import Optional


def coerce_int(value: object) -> Optional[int]:
    """Ints and numeric strings become int; bools and anything else become None."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        return None
    try:
        return int(value)
    except ValueError:
        return None


def coerce_decimal(value: object) -> Optional[Decimal]:
    """Return a finite Decimal for int/float/str/Decimal inputs, otherwise None.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1") rather than its
    binary expansion.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None

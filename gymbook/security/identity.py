"""
Verified caller identity handed over by the identity provider.
The booking core trusts these claims and never looks roles up itself.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from gymbook.core.conversions import coerce_int


@dataclass(frozen=True)
class Identity:
    user_id: int
    staff_club_ids: FrozenSet[int] = field(default_factory=frozenset)
    is_admin: bool = False

    def is_staff_for_club(self, club_id: Optional[int]) -> bool:
        if self.is_admin:
            return True
        return club_id is not None and club_id in self.staff_club_ids


def identity_from_claims(claims: Optional[dict]) -> Optional[Identity]:
    """Build an Identity from verified token claims; None when ``user_id`` is missing"""
    if not claims:
        return None
    user_id = coerce_int(claims.get("user_id"))
    if user_id is None:
        return None

    club_ids = set()
    for value in claims.get("staff_club_ids") or []:
        club_id = coerce_int(value)
        if club_id is not None:
            club_ids.add(club_id)

    return Identity(
        user_id=user_id,
        staff_club_ids=frozenset(club_ids),
        is_admin=bool(claims.get("is_admin", False)),
    )

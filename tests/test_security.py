from datetime import timedelta

from gymbook.security.identity import Identity, identity_from_claims
from gymbook.security.jwt import create_access_token, extract_token, verify_token


def test_token_round_trip_builds_identity():
    token = create_access_token({"user_id": 7, "staff_club_ids": [1, "2"], "is_admin": False})

    identity = identity_from_claims(verify_token(token))

    assert identity == Identity(user_id=7, staff_club_ids=frozenset({1, 2}), is_admin=False)
    assert identity.is_staff_for_club(2)
    assert not identity.is_staff_for_club(3)


def test_expired_or_tampered_token_is_rejected():
    expired = create_access_token({"user_id": 7}, expires_delta=timedelta(seconds=-10))
    assert verify_token(expired) is None

    header, _, signature = create_access_token({"user_id": 7}).split(".")
    forged_payload = create_access_token({"user_id": 1, "is_admin": True}).split(".")[1]
    assert verify_token(".".join([header, forged_payload, signature])) is None


def test_claims_without_user_are_ignored():
    assert identity_from_claims(None) is None
    assert identity_from_claims({"staff_club_ids": [1]}) is None
    assert identity_from_claims({"user_id": "abc"}) is None


def test_admin_is_staff_everywhere():
    admin = Identity(user_id=1, is_admin=True)
    assert admin.is_staff_for_club(99)
    assert not Identity(user_id=2).is_staff_for_club(None)


def test_token_headers():
    assert extract_token({"x-access-token": "abc"}) == "abc"
    assert extract_token({"authorization": "Bearer def"}) == "def"
    assert extract_token({"authorization": "Basic Zm9v"}) is None
    assert extract_token({}) is None

from datetime import timedelta

import pytest

from gymbook.core.errors import (
    BusinessRuleError, NotFoundError, INVALID_DATES, MEMBERSHIP_INVALID, SESSION_UNAVAILABLE,
)
from gymbook.core.states import MembershipStatus
from gymbook.core.timeutils import club_today
from gymbook.crud.attendanceCrud import (
    get_attendance_by_date_range,
    get_attendance_count,
    get_session_attendance,
    get_today_attendance,
    get_user_attendance,
    record_check_in,
)


async def test_check_in_with_valid_membership(db, seed, make_membership):
    membership_id = await make_membership(end_date=club_today() + timedelta(days=10))

    attendance = await record_check_in(
        db,
        user_id=seed.member_id,
        membership_id=membership_id,
        club_id=seed.club_id,
        session_id=seed.session_id,
        recorded_by=seed.staff_id,
        notes="Front door",
    )

    assert attendance.id is not None
    assert attendance.check_in_time is not None
    assert attendance.session_id == seed.session_id
    assert attendance.recorded_by_user_id == seed.staff_id
    assert await get_attendance_count(db, membership_id) == 1


@pytest.mark.parametrize("status,end_offset", [
    (MembershipStatus.ACTIVE, -1),
    (MembershipStatus.SUSPENDED, 10),
    (MembershipStatus.PENDING, 10),
    (MembershipStatus.EXPIRED, -1),
])
async def test_check_in_rejects_invalid_membership(db, seed, make_membership, status, end_offset):
    membership_id = await make_membership(status=status, end_date=club_today() + timedelta(days=end_offset))

    with pytest.raises(BusinessRuleError) as exc:
        await record_check_in(db, user_id=seed.member_id, membership_id=membership_id, club_id=seed.club_id)
    assert exc.value.code == MEMBERSHIP_INVALID
    assert await get_attendance_count(db, membership_id) == 0


async def test_check_in_requires_matching_member_and_club(db, seed, make_membership):
    membership_id = await make_membership(end_date=None)

    with pytest.raises(BusinessRuleError) as exc:
        await record_check_in(db, user_id=seed.other_member_id, membership_id=membership_id, club_id=seed.club_id)
    assert exc.value.code == MEMBERSHIP_INVALID

    with pytest.raises(BusinessRuleError) as exc:
        await record_check_in(db, user_id=seed.member_id, membership_id=membership_id, club_id=seed.other_club_id)
    assert exc.value.code == MEMBERSHIP_INVALID


async def test_check_in_session_checks(db, seed, make_membership, make_session):
    membership_id = await make_membership(end_date=None)
    foreign_session = await make_session(capacity=5, club_id=seed.other_club_id)

    with pytest.raises(NotFoundError):
        await record_check_in(
            db, user_id=seed.member_id, membership_id=membership_id, club_id=seed.club_id, session_id=31337
        )

    with pytest.raises(BusinessRuleError) as exc:
        await record_check_in(
            db, user_id=seed.member_id, membership_id=membership_id, club_id=seed.club_id,
            session_id=foreign_session,
        )
    assert exc.value.code == SESSION_UNAVAILABLE


async def test_check_in_unknown_membership(db, seed):
    with pytest.raises(NotFoundError):
        await record_check_in(db, user_id=seed.member_id, membership_id=1234, club_id=seed.club_id)


async def test_attendance_reads(db, seed, make_membership):
    membership_id = await make_membership(end_date=None)
    first = await record_check_in(db, user_id=seed.member_id, membership_id=membership_id, club_id=seed.club_id)
    second = await record_check_in(
        db, user_id=seed.member_id, membership_id=membership_id, club_id=seed.club_id, session_id=seed.session_id
    )

    today = await get_today_attendance(db, seed.club_id)
    assert {a.id for a in today} == {first.id, second.id}

    week = await get_attendance_by_date_range(
        db, seed.club_id, club_today() - timedelta(days=7), club_today()
    )
    assert len(week) == 2
    assert await get_attendance_by_date_range(
        db, seed.club_id, club_today() - timedelta(days=7), club_today() - timedelta(days=1)
    ) == []

    assert len(await get_user_attendance(db, seed.member_id)) == 2
    assert await get_user_attendance(db, seed.member_id, club_id=seed.other_club_id) == []
    assert [a.id for a in await get_session_attendance(db, seed.session_id)] == [second.id]
    assert await get_attendance_count(db, membership_id) == 2


async def test_date_range_must_be_ordered(db, seed):
    with pytest.raises(BusinessRuleError) as exc:
        await get_attendance_by_date_range(db, seed.club_id, club_today(), club_today() - timedelta(days=1))
    assert exc.value.code == INVALID_DATES

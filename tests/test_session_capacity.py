import pytest

from gymbook.core.errors import (
    BusinessRuleError, ConflictError, NotFoundError, SESSION_FULL, SESSION_UNAVAILABLE,
)
from gymbook.core.states import SessionStatus
from gymbook.crud.sessionCapacityCrud import (
    read_session_capacity,
    release_seat,
    try_claim_seat,
    _swap_booked_count,
)


async def test_claim_increments_counter_and_version(db, seed):
    before = await read_session_capacity(db, seed.session_id)

    claimed = await try_claim_seat(db, seed.session_id)
    await db.commit()

    assert claimed.booked_count == before.booked_count + 1
    assert claimed.version == before.version + 1
    assert claimed.available_spots == claimed.capacity - 1

    stored = await read_session_capacity(db, seed.session_id)
    assert stored.booked_count == claimed.booked_count
    assert stored.version == claimed.version


async def test_claim_on_full_session(db, make_session):
    session_id = await make_session(capacity=1)
    await try_claim_seat(db, session_id)
    await db.commit()

    with pytest.raises(BusinessRuleError) as exc:
        await try_claim_seat(db, session_id)
    assert exc.value.code == SESSION_FULL


async def test_claim_on_cancelled_session(db, make_session):
    session_id = await make_session(capacity=5, status=SessionStatus.CANCELLED)

    with pytest.raises(BusinessRuleError) as exc:
        await try_claim_seat(db, session_id)
    assert exc.value.code == SESSION_UNAVAILABLE


async def test_claim_on_missing_session(db, seed):
    with pytest.raises(NotFoundError):
        await try_claim_seat(db, 999_999)


async def test_stale_version_is_a_conflict(session_factory, seed):
    async with session_factory() as first, session_factory() as second:
        stale = await read_session_capacity(first, seed.session_id)

        await try_claim_seat(second, seed.session_id)
        await second.commit()

        with pytest.raises(ConflictError) as exc:
            await _swap_booked_count(first, stale, stale.booked_count + 1)
        assert exc.value.retryable
        await first.rollback()

        current = await read_session_capacity(first, seed.session_id)
        assert current.booked_count == 1
        assert current.version == stale.version + 1


async def test_release_floors_at_zero(db, make_session):
    session_id = await make_session(capacity=2)

    snapshot = await release_seat(db, session_id)
    await db.commit()

    assert snapshot.booked_count == 0
    assert snapshot.version == 0


async def test_release_decrements(db, make_session):
    session_id = await make_session(capacity=2)
    await try_claim_seat(db, session_id)
    await db.commit()

    snapshot = await release_seat(db, session_id)
    await db.commit()

    assert snapshot.booked_count == 0
    assert snapshot.version == 2


async def test_release_on_cancelled_or_missing_session_is_noop(db, make_session):
    session_id = await make_session(capacity=2, status=SessionStatus.CANCELLED)

    assert await release_seat(db, session_id) is None
    assert await release_seat(db, 999_999) is None

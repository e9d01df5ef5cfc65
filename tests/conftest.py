"""Shared fixtures: a file-backed SQLite database per test, seeded with a small club."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["DB_SCHEMA"] = ""
os.environ["LOG_FILE_PATH"] = ""
os.environ.setdefault("CLUB_TIMEZONE", "Asia/Tehran")
os.environ.setdefault("SECRET_KEY_ACCESS_TOKEN", "test-secret")
os.environ["MEMBERSHIP_EXPIRY_INTERVAL_SECONDS"] = "0"

from datetime import date, time, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gymbook.core.states import MembershipStatus, SessionStatus
from gymbook.core.timeutils import club_today
from gymbook.crud.reservationsCrud import count_seat_holding_reservations
from gymbook.crud.sessionCapacityCrud import read_session_capacity
from gymbook.db.postgresql import Base
from gymbook.models import (
    Activity, ClassSession, Club, MembershipPlan, People, UserMembership,
)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'gymbook.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seed(db):
    member = People(full_name="Sara Ahmadi", phone_number="09121234567")
    other_member = People(full_name="Reza Karimi", phone_number="09351112233")
    staff = People(full_name="Front Desk", phone_number="09190000000")
    db.add_all([member, other_member, staff])

    club = Club(name="Pardis Fitness", address="Valiasr St.")
    other_club = Club(name="Shahrak Gym")
    db.add_all([club, other_club])
    await db.flush()

    activity = Activity(club_id=club.id, name="Yoga")
    plan = MembershipPlan(club_id=club.id, name="Monthly", price=Decimal("1500000.00"), duration_days=30)
    unlimited_plan = MembershipPlan(club_id=club.id, name="Lifetime", price=Decimal("9000000.00"))
    foreign_plan = MembershipPlan(club_id=other_club.id, name="Other Monthly", price=Decimal("1000000.00"), duration_days=30)
    db.add_all([activity, plan, unlimited_plan, foreign_plan])
    await db.flush()

    session = ClassSession(
        club_id=club.id,
        activity_id=activity.id,
        trainer_id=staff.id,
        session_date=club_today() + timedelta(days=2),
        start_time=time(18, 0),
        end_time=time(19, 0),
        capacity=3,
    )
    db.add(session)
    await db.commit()

    return SimpleNamespace(
        member_id=member.id,
        other_member_id=other_member.id,
        staff_id=staff.id,
        club_id=club.id,
        other_club_id=other_club.id,
        activity_id=activity.id,
        plan_id=plan.id,
        unlimited_plan_id=unlimited_plan.id,
        foreign_plan_id=foreign_plan.id,
        session_id=session.id,
    )


@pytest.fixture
def make_session(db, seed):
    async def _make(capacity: int = 1, status: SessionStatus = SessionStatus.SCHEDULED, club_id=None) -> int:
        session = ClassSession(
            club_id=club_id or seed.club_id,
            activity_id=seed.activity_id,
            session_date=club_today() + timedelta(days=1),
            start_time=time(7, 0),
            end_time=time(8, 0),
            capacity=capacity,
            status=status,
        )
        db.add(session)
        await db.commit()
        return session.id
    return _make


@pytest.fixture
def make_people(db):
    async def _make(count: int):
        people = [People(full_name=f"Member {i}", phone_number=None) for i in range(count)]
        db.add_all(people)
        await db.commit()
        return [p.id for p in people]
    return _make


@pytest.fixture
def make_membership(db, seed):
    async def _make(
        status: MembershipStatus = MembershipStatus.ACTIVE,
        start_date: date = None,
        end_date: date = None,
        user_id: int = None,
        club_id: int = None,
    ) -> int:
        today = club_today()
        membership = UserMembership(
            user_id=user_id or seed.member_id,
            plan_id=seed.plan_id,
            club_id=club_id or seed.club_id,
            start_date=start_date or today - timedelta(days=10),
            end_date=end_date,
            status=status,
        )
        db.add(membership)
        await db.commit()
        return membership.id
    return _make


async def assert_seat_invariant(db, session_id: int):
    snapshot = await read_session_capacity(db, session_id)
    live = await count_seat_holding_reservations(db, session_id)
    assert 0 <= snapshot.booked_count <= snapshot.capacity
    assert snapshot.booked_count == live
    return snapshot


@pytest.fixture
def seat_invariant():
    return assert_seat_invariant

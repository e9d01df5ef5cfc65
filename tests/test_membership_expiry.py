from datetime import timedelta

from gymbook.core.states import MembershipStatus
from gymbook.core.timeutils import club_today
from gymbook.crud.membershipsCrud import get_membership_by_id
from gymbook.services.membership_expiry import MembershipExpiryService


async def test_run_once_expires_and_reports(db, session_factory, make_membership):
    membership_id = await make_membership(end_date=club_today() - timedelta(days=2))
    service = MembershipExpiryService(session_factory, interval_seconds=0)

    stats = await service.run_once()
    assert stats["expired"] == 1
    assert stats["cutoff"] == club_today().isoformat()

    again = await service.run_once()
    assert again["expired"] == 0

    stored = await get_membership_by_id(db, membership_id)
    assert stored.status == MembershipStatus.EXPIRED.value


async def test_zero_interval_disables_loop(session_factory):
    service = MembershipExpiryService(session_factory, interval_seconds=0)

    assert service.start() is False
    assert service.running is False
    await service.stop()


async def test_start_and_stop(session_factory):
    service = MembershipExpiryService(session_factory, interval_seconds=3600)

    assert service.start() is True
    assert service.running is True

    await service.stop()
    assert service.running is False

from datetime import time, timedelta

from gymbook.core.timeutils import club_today
from gymbook.crud.attendanceCrud import record_check_in
from gymbook.crud.membershipsCrud import approve_membership, request_membership
from gymbook.crud.paymentsCrud import get_club_payments, record_payment
from gymbook.crud.reservationsCrud import create_reservation
from gymbook.services.projections import (
    enrich_attendance,
    enrich_memberships,
    enrich_payments,
    enrich_reservations,
)


async def test_reservations_get_names_and_schedule(db, seed):
    reservation = await create_reservation(db, user_id=seed.member_id, session_id=seed.session_id)

    [enriched] = await enrich_reservations(db, [reservation])

    assert enriched.user_name == "Sara Ahmadi"
    assert enriched.user_phone == "09121234567"
    assert enriched.club_name == "Pardis Fitness"
    assert enriched.activity_name == "Yoga"
    assert enriched.session_date == club_today() + timedelta(days=2)
    assert enriched.start_time == time(18, 0)


async def test_payments_labelled_by_target(db, seed):
    reservation = await create_reservation(db, user_id=seed.member_id, session_id=seed.session_id)
    await record_payment(db, reservation_id=reservation.id, amount=100000, method="CASH", recorded_by=seed.staff_id)
    membership = await request_membership(db, user_id=seed.other_member_id, plan_id=seed.plan_id, club_id=seed.club_id)
    await approve_membership(db, membership.id, amount=1500000, method="CARD", approved_by=seed.staff_id)

    payments = await enrich_payments(db, await get_club_payments(db, seed.club_id))
    by_type = {p.payment_type: p for p in payments}

    assert by_type["RESERVATION"].activity_name == "Yoga"
    assert by_type["RESERVATION"].plan_name is None
    assert by_type["RESERVATION"].recorded_by_name == "Front Desk"
    assert by_type["MEMBERSHIP"].plan_name == "Monthly"
    assert by_type["MEMBERSHIP"].user_name == "Reza Karimi"


async def test_memberships_and_attendance(db, seed, make_membership):
    membership = await request_membership(db, user_id=seed.member_id, plan_id=seed.plan_id, club_id=seed.club_id)
    [enriched] = await enrich_memberships(db, [membership])
    assert enriched.plan_name == "Monthly"
    assert enriched.club_name == "Pardis Fitness"
    assert enriched.user_name == "Sara Ahmadi"

    membership_id = await make_membership(end_date=None)
    attendance = await record_check_in(
        db, user_id=seed.member_id, membership_id=membership_id, club_id=seed.club_id,
        session_id=seed.session_id, recorded_by=seed.staff_id,
    )
    [enriched] = await enrich_attendance(db, [attendance])
    assert enriched.activity_name == "Yoga"
    assert enriched.recorded_by_name == "Front Desk"
    assert enriched.club_name == "Pardis Fitness"


async def test_empty_batches(db):
    assert await enrich_reservations(db, []) == []
    assert await enrich_payments(db, []) == []

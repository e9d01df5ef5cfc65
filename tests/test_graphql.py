from datetime import timedelta

from fastapi.testclient import TestClient

from gymbook.core.timeutils import club_today
from gymbook.crud.reservationsCrud import create_reservation
from gymbook.crud.sessionCapacityCrud import read_session_capacity
from gymbook.graphql.context import Context
from gymbook.graphql.reservations import mutations as reservation_mutations
from gymbook.graphql.schema import schema
from gymbook.security.identity import Identity

CREATE_RESERVATION = """
mutation Book($sessionId: Int!) {
  createReservation(input: {sessionId: $sessionId}) {
    success
    message
    errorCode
    reservation { id status userId activityName clubName }
  }
}
"""

RECORD_PAYMENT = """
mutation Pay($reservationId: Int!) {
  recordPayment(input: {reservationId: $reservationId, amount: 100000, method: "CASH"}) {
    success
    message
    errorCode
    payment { id amount status method recordedBy }
  }
}
"""

CANCEL_RESERVATION = """
mutation Cancel($reservationId: Int!) {
  cancelReservation(input: {reservationId: $reservationId, reason: "sick"}) {
    success
    errorCode
    reservation { status cancellationReason }
  }
}
"""


def _member(seed):
    return Identity(user_id=seed.member_id)


def _staff(seed):
    return Identity(user_id=seed.staff_id, staff_club_ids=frozenset({seed.club_id}))


async def _run(db, query, identity=None, **variables):
    return await schema.execute(
        query,
        variable_values=variables,
        context_value=Context(db=db, identity=identity),
    )


async def test_anonymous_callers_are_refused(db, seed):
    result = await _run(db, CREATE_RESERVATION, sessionId=seed.session_id)

    assert result.errors
    assert "Authentication required" in result.errors[0].message


async def test_member_books_a_session(db, seed):
    result = await _run(db, CREATE_RESERVATION, _member(seed), sessionId=seed.session_id)

    assert result.errors is None
    payload = result.data["createReservation"]
    assert payload["success"] is True
    assert payload["errorCode"] is None
    assert payload["reservation"]["status"] == "PENDING_PAYMENT"
    assert payload["reservation"]["userId"] == seed.member_id
    assert payload["reservation"]["activityName"] == "Yoga"
    assert payload["reservation"]["clubName"] == "Pardis Fitness"


async def test_committed_booking_survives_a_failed_projection(db, seed, monkeypatch):
    async def broken_enrich(db, items):
        raise RuntimeError("projection query failed")

    monkeypatch.setattr(reservation_mutations, "enrich_reservations", broken_enrich)

    result = await _run(db, CREATE_RESERVATION, _member(seed), sessionId=seed.session_id)

    payload = result.data["createReservation"]
    assert payload["success"] is True
    assert payload["errorCode"] is None
    assert payload["reservation"]["status"] == "PENDING_PAYMENT"
    assert payload["reservation"]["activityName"] is None
    assert (await read_session_capacity(db, seed.session_id)).booked_count == 1


async def test_business_errors_use_the_envelope(db, seed, make_session):
    session_id = await make_session(capacity=1)
    await create_reservation(db, user_id=seed.other_member_id, session_id=session_id)

    result = await _run(db, CREATE_RESERVATION, _member(seed), sessionId=session_id)

    payload = result.data["createReservation"]
    assert payload["success"] is False
    assert payload["errorCode"] == "SESSION_FULL"
    assert payload["reservation"] is None


async def test_payment_needs_club_staff(db, seed):
    reservation = await create_reservation(db, user_id=seed.member_id, session_id=seed.session_id)

    denied = await _run(db, RECORD_PAYMENT, _member(seed), reservationId=reservation.id)
    assert denied.data["recordPayment"]["success"] is False
    assert denied.data["recordPayment"]["errorCode"] == "FORBIDDEN"

    other_club_staff = Identity(user_id=seed.staff_id, staff_club_ids=frozenset({seed.other_club_id}))
    denied = await _run(db, RECORD_PAYMENT, other_club_staff, reservationId=reservation.id)
    assert denied.data["recordPayment"]["errorCode"] == "FORBIDDEN"

    allowed = await _run(db, RECORD_PAYMENT, _staff(seed), reservationId=reservation.id)
    payload = allowed.data["recordPayment"]
    assert payload["success"] is True
    assert payload["payment"]["amount"] == 100000.0
    assert payload["payment"]["status"] == "PAID"
    assert payload["payment"]["recordedBy"] == seed.staff_id

    again = await _run(db, RECORD_PAYMENT, _staff(seed), reservationId=reservation.id)
    assert again.data["recordPayment"]["errorCode"] == "PAYMENT_EXISTS"


async def test_cancel_by_another_member_is_forbidden(db, seed):
    reservation = await create_reservation(db, user_id=seed.member_id, session_id=seed.session_id)

    stranger = Identity(user_id=seed.other_member_id)
    denied = await _run(db, CANCEL_RESERVATION, stranger, reservationId=reservation.id)
    assert denied.data["cancelReservation"]["errorCode"] == "FORBIDDEN"

    own = await _run(db, CANCEL_RESERVATION, _member(seed), reservationId=reservation.id)
    assert own.data["cancelReservation"]["success"] is True
    assert own.data["cancelReservation"]["reservation"]["status"] == "CANCELLED"
    assert own.data["cancelReservation"]["reservation"]["cancellationReason"] == "sick"


async def test_session_availability_and_my_reservations(db, seed):
    await create_reservation(db, user_id=seed.member_id, session_id=seed.session_id)

    result = await _run(
        db,
        """
        query Overview($sessionId: Int!) {
          sessionAvailability(sessionId: $sessionId) { capacity bookedCount availableSpots status }
          myReservations(activeOnly: true) { sessionId status }
        }
        """,
        _member(seed),
        sessionId=seed.session_id,
    )

    assert result.errors is None
    assert result.data["sessionAvailability"] == {
        "capacity": 3, "bookedCount": 1, "availableSpots": 2, "status": "SCHEDULED",
    }
    assert result.data["myReservations"] == [{"sessionId": seed.session_id, "status": "PENDING_PAYMENT"}]


async def test_membership_flow_through_graphql(db, seed):
    requested = await _run(
        db,
        """
        mutation Request($planId: Int!, $clubId: Int!) {
          requestMembership(input: {planId: $planId, clubId: $clubId}) {
            success errorCode membership { id status planName endDate }
          }
        }
        """,
        _member(seed),
        planId=seed.plan_id,
        clubId=seed.club_id,
    )
    membership = requested.data["requestMembership"]["membership"]
    assert membership["status"] == "PENDING"
    assert membership["planName"] == "Monthly"
    assert membership["endDate"] == (club_today() + timedelta(days=29)).isoformat()

    approve = """
    mutation Approve($membershipId: Int!) {
      approveMembership(input: {membershipId: $membershipId, amount: 500000, method: "CARD"}) {
        success errorCode membership { status paymentId }
      }
    }
    """
    denied = await _run(db, approve, _member(seed), membershipId=membership["id"])
    assert denied.data["approveMembership"]["errorCode"] == "FORBIDDEN"

    approved = await _run(db, approve, _staff(seed), membershipId=membership["id"])
    assert approved.data["approveMembership"]["success"] is True
    assert approved.data["approveMembership"]["membership"]["status"] == "ACTIVE"
    assert approved.data["approveMembership"]["membership"]["paymentId"] is not None

    validation = await _run(
        db,
        """
        query Validate($userId: Int!, $clubId: Int!) {
          validateMembership(userId: $userId, clubId: $clubId) { valid message membershipId }
        }
        """,
        _staff(seed),
        userId=seed.member_id,
        clubId=seed.club_id,
    )
    assert validation.data["validateMembership"] == {
        "valid": True, "message": "Membership is valid", "membershipId": membership["id"],
    }


async def test_staff_check_in_through_graphql(db, seed, make_membership):
    membership_id = await make_membership(end_date=None)

    result = await _run(
        db,
        """
        mutation CheckIn($userId: Int!, $membershipId: Int!, $clubId: Int!) {
          checkIn(input: {userId: $userId, membershipId: $membershipId, clubId: $clubId}) {
            success errorCode attendance { id userName recordedByName }
          }
        }
        """,
        _staff(seed),
        userId=seed.member_id,
        membershipId=membership_id,
        clubId=seed.club_id,
    )

    payload = result.data["checkIn"]
    assert payload["success"] is True
    assert payload["attendance"]["userName"] == "Sara Ahmadi"
    assert payload["attendance"]["recordedByName"] == "Front Desk"


def test_health_endpoint():
    from gymbook.main import app

    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

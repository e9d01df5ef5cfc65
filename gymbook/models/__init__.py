# Booking core models - one module per aggregate
from gymbook.models.userModel import People
from gymbook.models.clubModel import Club, Activity, MembershipPlan
from gymbook.models.classModel import ClassSession, Reservation
from gymbook.models.membershipsModel import UserMembership, Payment
from gymbook.models.attendanceModel import Attendance

__all__ = [
    "People",
    "Club", "Activity", "MembershipPlan",
    "ClassSession", "Reservation",
    "UserMembership", "Payment",
    "Attendance",
]

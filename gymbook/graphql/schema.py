import strawberry

from gymbook.graphql.attendance.mutations import AttendanceMutation
from gymbook.graphql.attendance.queries import AttendanceQuery
from gymbook.graphql.memberships.mutations import MembershipMutation
from gymbook.graphql.memberships.queries import MembershipQuery
from gymbook.graphql.payments.mutations import PaymentMutation
from gymbook.graphql.payments.queries import PaymentQuery
from gymbook.graphql.reservations.mutations import ReservationMutation
from gymbook.graphql.reservations.queries import ReservationQuery


@strawberry.type
class Query(ReservationQuery, PaymentQuery, MembershipQuery, AttendanceQuery):
    pass


@strawberry.type
class Mutation(ReservationMutation, PaymentMutation, MembershipMutation, AttendanceMutation):
    pass


schema = strawberry.Schema(query=Query, mutation=Mutation)

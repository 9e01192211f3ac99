"""The authenticated caller of a booking operation."""

from dataclasses import dataclass
from uuid import UUID

from shortlet.core.exceptions import AuthorizationError
from shortlet.domain.booking_state import ActorRole
from shortlet.domain.dispute_state import DisputeParty


@dataclass(frozen=True)
class Actor:
    user_id: UUID
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


def party_for(actor: Actor, booking) -> DisputeParty:
    """The side of ``booking`` the actor stands on.

    Raises:
        AuthorizationError: If the actor is neither the booking's guest
            acting as a guest nor its host acting as a host
    """
    if actor.role == ActorRole.GUEST and actor.user_id == booking.guest_id:
        return DisputeParty.GUEST
    if actor.role == ActorRole.HOST and actor.user_id == booking.host_id:
        return DisputeParty.HOST
    raise AuthorizationError("You are not a party to this booking")


def assert_can_view(actor: Actor, booking) -> None:
    if actor.is_admin:
        return
    party_for(actor, booking)

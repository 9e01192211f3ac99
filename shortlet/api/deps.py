"""API dependencies for authentication and common operations."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shortlet.core.exceptions import AuthorizationError
from shortlet.core.security import actor_from_token
from shortlet.database import get_db, get_session_factory
from shortlet.domain.actor import Actor
from shortlet.domain.booking_state import ActorRole

__all__ = [
    "get_current_actor",
    "get_current_admin",
    "get_current_host",
    "get_db",
    "get_session_factory",
]

# Security scheme
security = HTTPBearer()


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Actor:
    """Get the calling actor from the bearer token.

    Users live in the external auth service, so the token's ``sub`` and
    ``role`` claims are taken as-is once the signature checks out.
    """
    return actor_from_token(credentials.credentials)


async def get_current_host(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Get current actor and verify they are a host."""
    if actor.role != ActorRole.HOST:
        raise AuthorizationError("Host access required")
    return actor


async def get_current_admin(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Get current actor and verify they are an admin."""
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    return actor

"""Bearer tokens carrying the caller's user id and marketplace role.

The external auth service issues them. This service checks signature,
expiry and token type, then turns the ``sub`` and ``role`` claims into an
:class:`~shortlet.domain.actor.Actor`.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from shortlet.config import settings
from shortlet.core.exceptions import AuthenticationError
from shortlet.domain.actor import Actor
from shortlet.domain.booking_state import ActorRole

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    claims: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Sign ``claims`` as an access token (for operator tooling and tests)."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {**claims, "exp": expire, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def issue_actor_token(actor: Actor, expires_delta: timedelta | None = None) -> str:
    return create_access_token({"sub": str(actor.user_id), "role": actor.role.value}, expires_delta)


def verify_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> dict[str, Any]:
    """Decode a token and check its type.

    Raises:
        AuthenticationError: If the token is expired, forged or of another type
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {e}")
    if payload.get("type") != token_type:
        raise AuthenticationError("Invalid token type")
    return payload


def actor_from_token(token: str) -> Actor:
    """Verify ``token`` and build the calling actor from its claims."""
    payload = verify_token(token)
    try:
        return Actor(user_id=UUID(payload["sub"]), role=ActorRole(payload.get("role")))
    except (KeyError, ValueError, TypeError):
        raise AuthenticationError("Token is missing a valid sub or role claim")

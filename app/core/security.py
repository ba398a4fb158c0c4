"""Actor tokens: JWTs naming the staff member or user behind a request."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings

TOKEN_TYPE = "access"


def create_actor_token(
    actor_id: UUID,
    actor_type: str = "user",
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed token for a staff member or self-service user.

    Args:
        actor_id: ID stored in the ``sub`` claim
        actor_type: ``staff`` or ``user``
        expires_delta: Lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": str(actor_id),
        "actor_type": actor_type,
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Verify a token's signature, expiry and type.

    Returns:
        The claims, or None if the token is not a valid access token
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if payload.get("type") != TOKEN_TYPE:
        return None

    return payload

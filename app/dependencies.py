"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis_client import CacheManager, get_cache_manager
from app.core.security import decode_access_token
from app.database import get_db
from app.schemas.auth import Actor, ActorKind

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Actor:
    """
    Extract the calling staff member or user from the JWT.

    The ``sub`` claim carries the actor ID and ``actor_type`` whether it is
    ``staff`` or a self-service ``user`` (the default).

    Args:
        credentials: Bearer token credentials

    Returns:
        Authenticated actor

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    subject = payload.get("sub")
    if subject is None or not isinstance(subject, str):
        raise _credentials_error()

    try:
        actor_id = UUID(subject)
    except ValueError:
        raise _credentials_error("Invalid actor ID format") from None

    try:
        kind = ActorKind(payload.get("actor_type", ActorKind.USER.value))
    except ValueError:
        raise _credentials_error("Invalid actor type") from None

    return Actor(id=actor_id, kind=kind)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
Cache = Annotated[CacheManager | None, Depends(get_cache_manager)]

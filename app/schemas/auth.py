"""Authentication schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class ActorKind(str, Enum):
    """Who initiated an operation."""

    STAFF = "staff"
    USER = "user"


class Actor(BaseModel):
    """Authenticated caller extracted from the bearer token."""

    id: UUID
    kind: ActorKind = ActorKind.USER

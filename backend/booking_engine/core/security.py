"""Bearer token handling.

Tokens are minted by the external identity service; this module only needs to
verify them and turn their claims into an :class:`Actor`.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt

from booking_engine.core.config import get_settings


class ActorRole(str, enum.Enum):
    """Roles recognised by the booking engine."""

    CUSTOMER = "customer"
    SHOP_OWNER = "shop_owner"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(slots=True, frozen=True)
class Actor:
    """Authenticated caller of an engine operation."""

    user_id: uuid.UUID | None
    role: ActorRole

    @property
    def is_staff(self) -> bool:
        return self.role in {ActorRole.ADMIN, ActorRole.SYSTEM}


SYSTEM_ACTOR = Actor(user_id=None, role=ActorRole.SYSTEM)


def create_access_token(
    subject: str, role: ActorRole, expires_delta: timedelta | None = None
) -> str:
    """Create a JWT access token (used by tooling and tests)."""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=60)
    claims: dict[str, Any] = {
        "sub": subject,
        "role": role.value,
        "exp": datetime.now(UTC) + expires_delta,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode a JWT token, raising JWTError on failure."""
    settings = get_settings()
    return jwt.decode(
        token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )

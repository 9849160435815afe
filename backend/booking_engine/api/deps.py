"""Common API dependencies."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import Clock, utc_now
from booking_engine.core.security import Actor, ActorRole, decode_access_token
from booking_engine.db.session import get_session

bearer_scheme = HTTPBearer(auto_error=False)

# Roles a caller may claim in a token; SYSTEM is reserved for in-process jobs.
_TOKEN_ROLES = {ActorRole.CUSTOMER, ActorRole.SHOP_OWNER, ActorRole.ADMIN}


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_clock() -> Clock:
    """Wall clock used for hold expiry; overridden in tests."""
    return utc_now


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Actor:
    """Authenticate request via bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as exc:
        raise credentials_exception from exc

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
        role = ActorRole(payload.get("role"))
    except (ValueError, TypeError) as exc:
        raise credentials_exception from exc
    if role not in _TOKEN_ROLES:
        raise credentials_exception
    return Actor(user_id=user_id, role=role)

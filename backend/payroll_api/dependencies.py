"""Request guards: who is calling, and may they change things."""
from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any, Callable

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_session
from .models import User
from .security import csrf_matches, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the bearer token to a live user row.

    The token's id claim is looked up afresh on every request so a
    deactivated account loses access before its token expires.
    """

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise _unauthorized("Could not validate credentials") from exc

    user = await session.get(User, int(claims.sub))
    if user is None or not user.is_active or user.username != claims.username:
        raise _unauthorized("Inactive or missing user")
    return user


async def get_csrf_user(
    user: User = Depends(get_current_user),
    csrf_token: str | None = Header(default=None, alias="X-CSRF-TOKEN"),
) -> User:
    """Authenticated user for state-changing routes; requires the CSRF header."""

    if not csrf_matches(user, csrf_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="CSRF token missing or invalid")
    return user


def require_role(*roles: str) -> Callable[..., Any]:
    """Like get_csrf_user, but only for the listed roles."""

    async def checker(user: User = Depends(get_csrf_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return checker

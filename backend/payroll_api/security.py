"""Password hashing, access tokens and the CSRF token derived from them."""
from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from .config import get_settings
from .models import User
from .schemas import TokenData

ALGORITHM = "HS256"

# pure-python scheme, no bcrypt backend needed
password_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return password_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return password_context.verify(password, password_hash)


def token_expiry(now: datetime | None = None) -> datetime:
    """Absolute expiry for a token issued at ``now``."""

    now = now or datetime.now(timezone.utc)
    return now + timedelta(minutes=get_settings().access_token_expires_minutes)


def issue_access_token(user: User, expires_at: datetime) -> str:
    """
    Sign a JWT for ``user``.

    The role and department ride along so approval screens can be decided
    without another round trip; the database row stays authoritative.
    """

    claims: dict[str, Any] = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "department": user.department,
        "iat": int(datetime.now(timezone.utc).timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(claims, get_settings().secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    """Validate signature and expiry; raises ``jwt.PyJWTError`` otherwise."""

    claims = jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    return TokenData(**claims)


def csrf_token_for(user: User) -> str:
    """HMAC of the user's identity; stable for the life of the signing key."""

    message = f"{user.id}:{user.username}".encode()
    return hmac.new(get_settings().secret_key.encode(), message, hashlib.sha256).hexdigest()


def csrf_matches(user: User, supplied: str | None) -> bool:
    return bool(supplied) and hmac.compare_digest(supplied, csrf_token_for(user))

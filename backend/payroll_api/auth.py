"""Account registration and sign-in."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_session
from .errors import field_error
from .models import User
from .schemas import Token, UserCreate, UserLogin, UserRead
from .security import csrf_token_for, hash_password, issue_access_token, token_expiry, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _user_by_name(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: UserCreate, session: AsyncSession = Depends(get_session)
) -> User:
    """Create an account. Department managers must say which department they approve for."""

    if payload.role == "department_manager" and not payload.department.strip():
        raise field_error("department", "A department manager must belong to a department.")
    if await _user_by_name(session, payload.username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")

    user = User(
        username=payload.username,
        role=payload.role,
        department=payload.department.strip(),
        email=payload.email or "",
        password_hash=hash_password(payload.password),
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info("Registered %s (%s)", user.username, user.role)
    return user


@router.post("/login", response_model=Token)
async def login(
    payload: UserLogin, session: AsyncSession = Depends(get_session)
) -> Token:
    """Exchange credentials for a bearer token, its CSRF companion and the user's profile."""

    user = await _user_by_name(session, payload.username)
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        logger.warning("Login refused for deactivated account %s", user.username)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    expires_at = token_expiry()
    logger.info("%s signed in", user.username)
    return Token(
        access_token=issue_access_token(user, expires_at),
        csrf_token=csrf_token_for(user),
        expires_at=expires_at,
        user=UserRead.model_validate(user),
    )

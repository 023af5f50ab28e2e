"""Authentication: JWT bearer tokens and password login for admin users."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.user import User
from ..utils.security import verify_and_update_password

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


class Token(BaseModel):
    """Login response body."""

    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Claims read back from a bearer token."""

    user_id: Optional[str] = None
    email: Optional[str] = None


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign a JWT carrying ``data`` plus an ``exp`` claim.

    Args:
        data: Claims to encode; ``sub`` must hold the user id
        expires_delta: Lifetime of the token (default: JWT_EXPIRATION_MINUTES)
    """
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expiration_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Verify a JWT and return its claims.

    Returns:
        TokenData, or None when the token is malformed, expired, signed with
        another key or has no ``sub`` claim
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if payload.get("sub") is None:
        return None
    return TokenData(user_id=payload["sub"], email=payload.get("email"))


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """
    Check an email/password pair.

    On success the stored hash is replaced when it was made with an outdated
    work factor, and ``last_login_at`` is updated. The caller commits.

    Returns:
        The user, or None if the email is unknown or the password is wrong
    """
    user = await get_user_by_email(db, email)
    if not user:
        return None

    valid, new_hash = verify_and_update_password(password, user.password_hash)
    if not valid:
        return None

    if new_hash is not None:
        logger.info("Upgraded password hash for user %s", user.id)
        user.password_hash = new_hash
    user.last_login_at = datetime.utcnow()
    await db.flush()

    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    FastAPI dependency resolving the bearer token to a user.

    Raises:
        HTTPException: 401 if the token is invalid or the user no longer exists
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = decode_access_token(token)
    if token_data is None:
        raise credentials_exception

    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        raise credentials_exception

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise credentials_exception

    return user

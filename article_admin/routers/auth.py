"""Authentication endpoints: password login and the current user's profile."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.user import UserResponse
from ..services.auth_service import (
    Token,
    authenticate_user,
    create_access_token,
    get_current_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=Token,
    summary="Login and get access token",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: AsyncSession = Depends(get_db),
) -> Token:
    """
    Exchange an email and password for a bearer token.

    OAuth2 password flow form fields: **username** (the email) and **password**.
    """
    user = await authenticate_user(db, form_data.username, form_data.password)
    if not user:
        logger.info("Failed login attempt for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    await db.commit()
    logger.info("User %s logged in", user.id)

    return Token(access_token=create_access_token({"sub": str(user.id), "email": user.email}))


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
    responses={
        200: {"description": "User profile retrieved successfully"},
        401: {"description": "Not authenticated"},
    },
)
async def get_me(current_user: Annotated[User, Depends(get_current_user)]) -> UserResponse:
    """Profile of the authenticated user, including whether they are an admin."""
    return current_user

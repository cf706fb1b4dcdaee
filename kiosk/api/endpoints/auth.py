"""
Auth endpoints — login, registration, profile and password change.

Login returns the JWT in the body and also sets it as an HttpOnly cookie.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.deps import get_current_user, get_db, get_optional_user
from kiosk.core.config import settings
from kiosk.core.exceptions import BadRequest, Conflict, Forbidden, Unauthorized
from kiosk.core.rate_limit import limiter
from kiosk.core.security import (create_access_token, get_password_hash,
                                 verify_password)
from kiosk.models.user import User
from kiosk.schemas.common import MessageResponse
from kiosk.schemas.user import (AuthResponse, LoginRequest, PasswordChange,
                                ProfileResponse, UserCreate, UserRead)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _issue_token(response: Response, user: User) -> str:
    token = create_access_token(user.id, user.username, user.role)
    response.set_cookie(
        key="access_token",
        value=f"Bearer {token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return token


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Authenticate with username/password. Unknown user and bad password look the same."""
    result = await db.execute(select(User).where(User.username == body.username))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.hashed_password):
        logger.warning("Failed login for username %r", body.username)
        raise Unauthorized("Invalid credentials")

    token = _issue_token(response, user)
    logger.info("User %s logged in", user.username)
    return AuthResponse(
        message="Login successful",
        user=UserRead.model_validate(user),
        token=token,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def register(
    request: Request,
    response: Response,
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    caller: User | None = Depends(get_optional_user),
) -> AuthResponse:
    """Create an account. Only an admin may create another admin."""
    if body.role == "admin" and (caller is None or caller.role != "admin"):
        raise Forbidden("Admin access required to create admin users")

    existing = await db.execute(select(User.id).where(User.username == body.username))
    if existing.scalar_one_or_none() is not None:
        raise Conflict("Username already exists")

    user = User(
        username=body.username,
        hashed_password=get_password_hash(body.password),
        role=body.role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    token = _issue_token(response, user)
    logger.info("Registered user %s (%s)", user.username, user.role)
    return AuthResponse(
        message="User registered successfully",
        user=UserRead.model_validate(user),
        token=token,
    )


@router.get("/profile", response_model=ProfileResponse)
async def read_profile(
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    return ProfileResponse(user=UserRead.model_validate(current_user))


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    if not verify_password(body.current_password, current_user.hashed_password):
        raise BadRequest("Current password is incorrect")

    current_user.hashed_password = get_password_hash(body.new_password)
    await db.commit()
    logger.info("Password changed for user %s", current_user.username)
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """Clear the auth cookie."""
    response.delete_cookie("access_token")
    return MessageResponse(message="Logged out successfully")

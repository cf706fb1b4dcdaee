"""
FastAPI dependencies — auth guards and database session.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.core.config import settings
from kiosk.core.exceptions import Forbidden, Unauthorized
from kiosk.core.security import decode_access_token
from kiosk.db.session import async_session_factory
from kiosk.models.user import User

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
def _pick_token(header_token: str | None, cookie_token: str | None) -> str | None:
    # Priority: Header > Cookie
    if header_token:
        return header_token
    if cookie_token:
        # Login stores the cookie as "Bearer <token>"
        if cookie_token.startswith("Bearer "):
            return cookie_token.split(" ", 1)[1]
        return cookie_token
    return None


async def _resolve_user(token: str, db: AsyncSession) -> User:
    """Decode the token and re-validate it against the live user record."""
    payload = decode_access_token(token)
    if payload is None:
        raise Unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise Unauthorized("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if user is None or user.username != payload.get("username"):
        raise Forbidden("Invalid token")
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # Read from HttpOnly Cookie
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up user."""
    final_token = _pick_token(token, access_token)
    if not final_token:
        raise Unauthorized("Access token required")
    return await _resolve_user(final_token, db)


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Like ``get_current_user`` but anonymous callers get ``None``."""
    final_token = _pick_token(token, access_token)
    if not final_token:
        return None
    return await _resolve_user(final_token, db)


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Only allow admin role to proceed."""
    if current_user.role != "admin":
        raise Forbidden("Admin access required")
    return current_user


async def require_log_reader(
    current_user: User = Depends(get_current_user),
) -> User:
    """Activity-log reads: admin only unless the policy is relaxed."""
    if settings.ACTIVITY_READS_REQUIRE_ADMIN and current_user.role != "admin":
        raise Forbidden("Admin access required")
    return current_user

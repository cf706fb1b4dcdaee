"""Pydantic schemas for user accounts and tokens."""

from __future__ import annotations

import re

from pydantic import field_validator

from kiosk.schemas.common import CamelModel, UTCDateTime

VALID_ROLES = {"admin", "employee"}
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,50}$")


def _check_password_strength(v: str) -> str:
    if len(v) < 6:
        raise ValueError("Password must be at least 6 characters")
    if not (re.search(r"[a-z]", v) and re.search(r"[A-Z]", v) and re.search(r"\d", v)):
        raise ValueError(
            "Password must contain at least one lowercase letter, "
            "one uppercase letter, and one number"
        )
    return v


class LoginRequest(CamelModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class UserCreate(CamelModel):
    username: str
    password: str
    role: str = "employee"

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = v.strip()
        if not _USERNAME_RE.match(v):
            raise ValueError(
                "Username must be 3-50 characters of letters, numbers, and underscores"
            )
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password_strength(v)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in VALID_ROLES:
            raise ValueError("Role must be either admin or employee")
        return v


class PasswordChange(CamelModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, v: str) -> str:
        return _check_password_strength(v)


class UserRead(CamelModel):
    id: int
    username: str
    role: str
    created_at: UTCDateTime | None = None


class AuthResponse(CamelModel):
    message: str
    user: UserRead
    token: str
    token_type: str = "bearer"


class ProfileResponse(CamelModel):
    user: UserRead

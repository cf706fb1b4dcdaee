"""Pydantic schemas for the employee directory."""

from __future__ import annotations

import re

from pydantic import EmailStr, field_validator

from kiosk.schemas.common import CamelModel, Pagination, UTCDateTime

_PHONE_RE = re.compile(r"^\+?[0-9 ()./-]{7,20}$")


def _clean_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2 or len(v) > 100:
        raise ValueError("Name must be between 2 and 100 characters")
    return v


def _clean_short(v: str | None, label: str) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if len(v) > 50:
        raise ValueError(f"{label} must not exceed 50 characters")
    return v or None


def blank_email(v):
    """Trim and lower-case raw input; blanks mean no email. EmailStr validates the rest."""
    if not isinstance(v, str):
        return v
    v = v.strip().lower()
    return v or None


def normalise_phone(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if not _PHONE_RE.match(v):
        raise ValueError("Valid phone number is required")
    return v


# ── Employee ────────────────────────────────────────────────────────
class EmployeeCreate(CamelModel):
    name: str
    department: str | None = None
    position: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("department")
    @classmethod
    def _department(cls, v: str | None) -> str | None:
        return _clean_short(v, "Department")

    @field_validator("position")
    @classmethod
    def _position(cls, v: str | None) -> str | None:
        return _clean_short(v, "Position")

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return blank_email(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return normalise_phone(v)


class EmployeeUpdate(CamelModel):
    name: str | None = None
    department: str | None = None
    position: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        return None if v is None else _clean_name(v)

    @field_validator("department")
    @classmethod
    def _department(cls, v: str | None) -> str | None:
        return _clean_short(v, "Department")

    @field_validator("position")
    @classmethod
    def _position(cls, v: str | None) -> str | None:
        return _clean_short(v, "Position")

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return blank_email(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return normalise_phone(v)


class EmployeeRead(CamelModel):
    id: int
    name: str
    department: str | None
    position: str | None
    email: str | None
    phone: str | None
    photo: str | None
    is_active: bool
    created_at: UTCDateTime | None
    updated_at: UTCDateTime | None


class EmployeeList(CamelModel):
    employees: list[EmployeeRead]
    pagination: Pagination


class EmployeeMutationResponse(CamelModel):
    message: str
    employee: EmployeeRead


class DepartmentCount(CamelModel):
    department: str | None
    count: int

"""Pydantic schemas for visit logs and visit statistics."""

from __future__ import annotations

from pydantic import EmailStr, Field, field_validator

from kiosk.schemas.common import CamelModel, Pagination, UTCDateTime
from kiosk.schemas.employee import blank_email, normalise_phone


def _clean_guest_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2 or len(v) > 100:
        raise ValueError("Guest name must be between 2 and 100 characters")
    return v


def _clean_purpose(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Purpose is required")
    if len(v) > 200:
        raise ValueError("Purpose must not exceed 200 characters")
    return v


class GuestFields(CamelModel):
    """Guest details shared by check-in and notify requests."""

    guest_name: str
    guest_phone: str | None = None
    guest_email: EmailStr | None = None
    purpose: str

    @field_validator("guest_name")
    @classmethod
    def _guest_name(cls, v: str) -> str:
        return _clean_guest_name(v)

    @field_validator("purpose")
    @classmethod
    def _purpose(cls, v: str) -> str:
        return _clean_purpose(v)

    @field_validator("guest_phone")
    @classmethod
    def _guest_phone(cls, v: str | None) -> str | None:
        return normalise_phone(v)

    @field_validator("guest_email", mode="before")
    @classmethod
    def _guest_email(cls, v):
        return blank_email(v)


# ── Check-in / Check-out ────────────────────────────────────────────
class CheckInRequest(GuestFields):
    employee_id: int = Field(ge=1)
    notes: str | None = Field(default=None, max_length=500)


class CheckOutRequest(CamelModel):
    notes: str | None = Field(default=None, max_length=500)


class ActivityLogRead(CamelModel):
    id: int
    employee_id: int
    employee_name: str | None = None
    department: str | None = None
    position: str | None = None
    guest_name: str
    guest_phone: str | None
    guest_email: str | None
    purpose: str
    check_in_time: UTCDateTime
    check_out_time: UTCDateTime | None
    notes: str | None
    created_at: UTCDateTime | None
    status: str


class ActivityLogResponse(CamelModel):
    message: str
    log: ActivityLogRead


class ActivityLogList(CamelModel):
    logs: list[ActivityLogRead]
    pagination: Pagination


class EmployeeVisitorList(CamelModel):
    employee: str
    logs: list[ActivityLogRead]
    pagination: Pagination


# ── Statistics ─────────────────────────────────────────────────────
class StatsSummary(CamelModel):
    today_visitors: int
    active_visitors: int
    period_visitors: int
    average_visit_minutes: int


class DailyStat(CamelModel):
    date: str
    visitors: int
    completed_visits: int


class DepartmentStat(CamelModel):
    department: str | None
    visitor_count: int


class ActivityStatsResponse(CamelModel):
    summary: StatsSummary
    daily_stats: list[DailyStat]
    department_stats: list[DepartmentStat]
    period: int


class DashboardResponse(CamelModel):
    employees: int
    today_visitors: int
    active_visitors: int
    timestamp: UTCDateTime

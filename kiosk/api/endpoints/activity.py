"""
Visit-log endpoints.

- Check-in and check-out are public (used from the kiosk).
- Listing, per-employee history and statistics require a log reader
  (admin by default, see ``ACTIVITY_READS_REQUIRE_ADMIN``).
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.deps import get_db, require_log_reader
from kiosk.core.exceptions import BadRequest, NotFound
from kiosk.models.employee import ActivityLog, Employee
from kiosk.models.user import User
from kiosk.schemas.activity import (ActivityLogList, ActivityLogResponse,
                                    ActivityStatsResponse, CheckInRequest,
                                    CheckOutRequest, EmployeeVisitorList)
from kiosk.schemas.common import Pagination
from kiosk.services import visits

router = APIRouter(prefix="/activity", tags=["activity"])
logger = logging.getLogger(__name__)

_OPEN_STATUSES = {"checked_in", "active"}
_CLOSED_STATUSES = {"checked_out", "completed"}


def _status_filter(status: str | None):
    if status is None:
        return None
    if status in _OPEN_STATUSES:
        return ActivityLog.check_out_time.is_(None)
    if status in _CLOSED_STATUSES:
        return ActivityLog.check_out_time.is_not(None)
    raise BadRequest("Status must be checked_in or checked_out")


# ── Kiosk (PUBLIC) ──────────────────────────────────────────────────
@router.post("", response_model=ActivityLogResponse, status_code=201)
async def check_in(
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
) -> ActivityLogResponse:
    """Record a guest arrival for an active employee."""
    employee = await visits.get_active_employee(db, body.employee_id)
    log = await visits.record_check_in(
        db,
        employee,
        guest_name=body.guest_name,
        guest_phone=body.guest_phone,
        guest_email=body.guest_email,
        purpose=body.purpose,
        notes=body.notes,
    )
    return ActivityLogResponse(
        message="Check-in recorded successfully",
        log=visits.to_read(log, employee),
    )


@router.put("/{log_id}/checkout", response_model=ActivityLogResponse)
async def check_out(
    log_id: int,
    body: CheckOutRequest | None = None,
    db: AsyncSession = Depends(get_db),
) -> ActivityLogResponse:
    """Close an open visit. Already closed visits are treated as missing.

    The open-visit check and the write are one UPDATE, so of two racing
    check-outs only one matches the row.
    """
    values = {"check_out_time": visits.utc_now()}
    if body is not None and body.notes is not None:
        values["notes"] = body.notes
    result = await db.execute(
        update(ActivityLog)
        .where(ActivityLog.id == log_id, ActivityLog.check_out_time.is_(None))
        .values(**values)
    )
    if result.rowcount == 0:
        raise NotFound("Active check-in record not found")
    await db.commit()

    log, employee = (
        await db.execute(
            select(ActivityLog, Employee)
            .join(Employee, ActivityLog.employee_id == Employee.id)
            .where(ActivityLog.id == log_id)
        )
    ).one()

    logger.info("Check-out %d for employee %d", log.id, employee.id)
    return ActivityLogResponse(
        message="Check-out recorded successfully",
        log=visits.to_read(log, employee),
    )


# ── Admin dashboard reads ───────────────────────────────────────────
@router.get("", response_model=ActivityLogList)
async def list_activity(
    employee_id: int | None = Query(default=None, alias="employeeId", ge=1),
    day: date | None = Query(default=None, alias="date"),
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _reader: User = Depends(require_log_reader),
) -> ActivityLogList:
    filters = []
    if employee_id is not None:
        filters.append(ActivityLog.employee_id == employee_id)
    if day is not None:
        filters.append(ActivityLog.check_in_date == day.isoformat())
    status_clause = _status_filter(status)
    if status_clause is not None:
        filters.append(status_clause)

    total = (
        await db.execute(select(func.count(ActivityLog.id)).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(ActivityLog, Employee)
        .join(Employee, ActivityLog.employee_id == Employee.id)
        .where(*filters)
        .order_by(ActivityLog.check_in_time.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return ActivityLogList(
        logs=[visits.to_read(log, emp) for log, emp in result.all()],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/stats", response_model=ActivityStatsResponse)
async def activity_stats(
    period: int = Query(default=7, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    _reader: User = Depends(require_log_reader),
) -> ActivityStatsResponse:
    """Visitor counts, durations and breakdowns over the last ``period`` days."""
    return await visits.compute_stats(db, period)


@router.get("/employee/{employee_id}", response_model=EmployeeVisitorList)
async def employee_visitors(
    employee_id: int,
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _reader: User = Depends(require_log_reader),
) -> EmployeeVisitorList:
    employee = (
        await db.execute(select(Employee).where(Employee.id == employee_id))
    ).scalar_one_or_none()
    if employee is None:
        raise NotFound("Employee not found")

    filters = [ActivityLog.employee_id == employee_id]
    status_clause = _status_filter(status)
    if status_clause is not None:
        filters.append(status_clause)

    total = (
        await db.execute(select(func.count(ActivityLog.id)).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(ActivityLog)
        .where(*filters)
        .order_by(ActivityLog.check_in_time.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return EmployeeVisitorList(
        employee=employee.name,
        logs=[visits.to_read(log, employee) for log in result.scalars().all()],
        pagination=Pagination.build(page, limit, total),
    )

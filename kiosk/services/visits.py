"""
Visit-log helpers shared by the activity and notify endpoints.

Statistics fetch the period's visits in **one** query and aggregate in
Python, so the same code runs on SQLite and PostgreSQL.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.core.exceptions import NotFound
from kiosk.models.employee import ActivityLog, Employee
from kiosk.schemas.activity import (ActivityLogRead, ActivityStatsResponse,
                                    DailyStat, DepartmentStat, StatsSummary)
from kiosk.schemas.common import ensure_utc

logger = logging.getLogger(__name__)

TOP_DEPARTMENTS = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_read(log: ActivityLog, employee: Employee | None = None) -> ActivityLogRead:
    return ActivityLogRead(
        id=log.id,
        employee_id=log.employee_id,
        employee_name=employee.name if employee else None,
        department=employee.department if employee else None,
        position=employee.position if employee else None,
        guest_name=log.guest_name,
        guest_phone=log.guest_phone,
        guest_email=log.guest_email,
        purpose=log.purpose,
        check_in_time=log.check_in_time,
        check_out_time=log.check_out_time,
        notes=log.notes,
        created_at=log.created_at,
        status=log.status,
    )


async def get_active_employee(db: AsyncSession, employee_id: int) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True))
    )
    employee = result.scalar_one_or_none()
    if employee is None:
        raise NotFound("Employee not found or inactive")
    return employee


async def record_check_in(
    db: AsyncSession,
    employee: Employee,
    *,
    guest_name: str,
    purpose: str,
    guest_phone: str | None = None,
    guest_email: str | None = None,
    notes: str | None = None,
) -> ActivityLog:
    """Insert and commit a checked-in visit for an active employee."""
    now = utc_now()
    log = ActivityLog(
        employee_id=employee.id,
        guest_name=guest_name,
        guest_phone=guest_phone,
        guest_email=guest_email,
        purpose=purpose,
        notes=notes,
        check_in_time=now,
        check_in_date=now.strftime("%Y-%m-%d"),
        created_at=now,
    )
    db.add(log)
    await db.commit()
    await db.refresh(log)
    logger.info("Check-in %d: %s visiting employee %d", log.id, guest_name, employee.id)
    return log


async def compute_stats(db: AsyncSession, period_days: int) -> ActivityStatsResponse:
    now = utc_now()
    today = now.strftime("%Y-%m-%d")
    cutoff = now - timedelta(days=period_days)

    today_count = (
        await db.execute(
            select(func.count(ActivityLog.id)).where(ActivityLog.check_in_date == today)
        )
    ).scalar_one()
    active_count = (
        await db.execute(
            select(func.count(ActivityLog.id)).where(ActivityLog.check_out_time.is_(None))
        )
    ).scalar_one()

    rows = (
        await db.execute(
            select(ActivityLog, Employee.department)
            .join(Employee, ActivityLog.employee_id == Employee.id)
            .where(ActivityLog.check_in_time >= cutoff)
        )
    ).all()

    daily: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    departments: Counter = Counter()
    durations: list[float] = []
    for log, department in rows:
        bucket = daily[log.check_in_date]
        bucket[0] += 1
        departments[department] += 1
        if log.check_out_time is not None:
            bucket[1] += 1
            spent = ensure_utc(log.check_out_time) - ensure_utc(log.check_in_time)
            durations.append(spent.total_seconds() / 60)

    average = round(sum(durations) / len(durations)) if durations else 0
    return ActivityStatsResponse(
        summary=StatsSummary(
            today_visitors=today_count,
            active_visitors=active_count,
            period_visitors=len(rows),
            average_visit_minutes=average,
        ),
        daily_stats=[
            DailyStat(date=day, visitors=counts[0], completed_visits=counts[1])
            for day, counts in sorted(daily.items(), reverse=True)
        ],
        department_stats=[
            DepartmentStat(department=dept, visitor_count=count)
            for dept, count in sorted(
                departments.items(), key=lambda item: (-item[1], item[0] or "")
            )[:TOP_DEPARTMENTS]
        ],
        period=period_days,
    )

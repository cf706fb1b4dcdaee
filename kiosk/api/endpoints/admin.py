"""
Admin dashboard — headline counts for the reception overview.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.deps import get_db, require_admin
from kiosk.models.employee import ActivityLog, Employee
from kiosk.models.user import User
from kiosk.schemas.activity import DashboardResponse
from kiosk.services.visits import utc_now

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DashboardResponse:
    """Active employees, today's visitors and guests still in the building."""
    now = utc_now()
    employees = (
        await db.execute(select(func.count(Employee.id)).where(Employee.is_active.is_(True)))
    ).scalar_one()
    today_visitors = (
        await db.execute(
            select(func.count(ActivityLog.id)).where(
                ActivityLog.check_in_date == now.strftime("%Y-%m-%d")
            )
        )
    ).scalar_one()
    active_visitors = (
        await db.execute(
            select(func.count(ActivityLog.id)).where(ActivityLog.check_out_time.is_(None))
        )
    ).scalar_one()
    return DashboardResponse(
        employees=employees,
        today_visitors=today_visitors,
        active_visitors=active_visitors,
        timestamp=now,
    )

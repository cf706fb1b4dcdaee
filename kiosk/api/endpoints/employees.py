"""
Employee directory endpoints.

- GET operations are public (the kiosk lists employees without login).
- POST / PUT / DELETE operations require admin role and accept multipart
  form data with an optional ``photo`` file.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy import delete as sa_delete
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.deps import get_db, require_admin
from kiosk.core.config import settings
from kiosk.core.exceptions import BadRequest, Conflict, NotFound
from kiosk.core.rate_limit import limiter
from kiosk.models.employee import ActivityLog, Employee
from kiosk.models.user import User
from kiosk.schemas.common import MessageResponse, Pagination
from kiosk.schemas.employee import (DepartmentCount, EmployeeCreate,
                                    EmployeeList, EmployeeMutationResponse,
                                    EmployeeRead, EmployeeUpdate)
from kiosk.services import photos

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)


def _escape_like(term: str) -> str:
    # Escape SQL LIKE metacharacters to prevent wildcard injection
    return term.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")


def _uploaded(photo: UploadFile | None) -> UploadFile | None:
    """Browsers send an empty file part when no photo was chosen."""
    if photo is None or not photo.filename:
        return None
    return photo


async def _email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    query = select(Employee.id).where(Employee.email == email)
    if exclude_id is not None:
        query = query.where(Employee.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def _get_or_404(db: AsyncSession, employee_id: int) -> Employee:
    result = await db.execute(select(Employee).where(Employee.id == employee_id))
    emp = result.scalar_one_or_none()
    if emp is None:
        raise NotFound("Employee not found")
    return emp


# ── Directory (PUBLIC) ──────────────────────────────────────────────
@router.get("", response_model=EmployeeList)
async def list_employees(
    department: str | None = None,
    active: bool | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> EmployeeList:
    """Search and page through the directory, newest first."""
    filters = []
    if department:
        filters.append(Employee.department == department)
    if active is not None:
        filters.append(Employee.is_active.is_(active))
    if search and search.strip():
        pattern = f"%{_escape_like(search.strip())}%"
        filters.append(
            or_(
                Employee.name.ilike(pattern, escape="\\"),
                Employee.email.ilike(pattern, escape="\\"),
                Employee.department.ilike(pattern, escape="\\"),
                Employee.position.ilike(pattern, escape="\\"),
            )
        )

    total = (
        await db.execute(select(func.count(Employee.id)).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(Employee)
        .where(*filters)
        .order_by(Employee.created_at.desc(), Employee.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return EmployeeList(
        employees=[EmployeeRead.model_validate(e) for e in result.scalars().all()],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/departments", response_model=list[DepartmentCount])
async def department_counts(
    db: AsyncSession = Depends(get_db),
) -> list[DepartmentCount]:
    """Active employee head-count per department."""
    result = await db.execute(
        select(Employee.department, func.count(Employee.id))
        .where(Employee.is_active.is_(True))
        .group_by(Employee.department)
        .order_by(Employee.department)
    )
    return [DepartmentCount(department=dept, count=count) for dept, count in result.all()]


@router.get("/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    return await _get_or_404(db, employee_id)


# ── Admin CRUD ──────────────────────────────────────────────────────
@router.post("", response_model=EmployeeMutationResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_UPLOAD)
async def create_employee(
    request: Request,
    name: str = Form(...),
    department: str | None = Form(None),
    position: str | None = Form(None),
    email: str | None = Form(None),
    phone: str | None = Form(None),
    is_active: bool = Form(True, alias="isActive"),
    photo: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> EmployeeMutationResponse:
    try:
        body = EmployeeCreate(
            name=name,
            department=department,
            position=position,
            email=email,
            phone=phone,
            is_active=is_active,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    if body.email and await _email_taken(db, body.email):
        raise Conflict("Employee with this email already exists")

    upload = _uploaded(photo)
    photo_path = await photos.save_photo(upload) if upload else None
    try:
        employee = Employee(**body.model_dump(), photo=photo_path)
        db.add(employee)
        await db.commit()
        await db.refresh(employee)
    except Exception:
        # No orphaned files when the insert fails
        await db.rollback()
        photos.delete_photo(photo_path)
        raise

    logger.info("Created employee %d (%s)", employee.id, employee.name)
    return EmployeeMutationResponse(
        message="Employee created successfully",
        employee=EmployeeRead.model_validate(employee),
    )


@router.put("/{employee_id}", response_model=EmployeeMutationResponse)
@limiter.limit(settings.RATE_LIMIT_UPLOAD)
async def update_employee(
    request: Request,
    employee_id: int,
    name: str | None = Form(None),
    department: str | None = Form(None),
    position: str | None = Form(None),
    email: str | None = Form(None),
    phone: str | None = Form(None),
    is_active: bool | None = Form(None, alias="isActive"),
    photo: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> EmployeeMutationResponse:
    """Partial update — only supplied fields change."""
    supplied = {
        key: value
        for key, value in {
            "name": name,
            "department": department,
            "position": position,
            "email": email,
            "phone": phone,
            "is_active": is_active,
        }.items()
        if value is not None
    }
    try:
        changes = EmployeeUpdate(**supplied).model_dump(exclude_unset=True)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    emp = await _get_or_404(db, employee_id)

    upload = _uploaded(photo)
    if not changes and upload is None:
        raise BadRequest("No fields to update")

    new_email = changes.get("email")
    if new_email and new_email != emp.email:
        if await _email_taken(db, new_email, exclude_id=emp.id):
            raise Conflict("Email is already taken by another employee")
    if "email" in changes and changes["email"] != emp.email:
        # Cached Slack id belongs to the old address
        emp.slack_user_id = None

    old_photo = emp.photo
    new_photo = await photos.save_photo(upload) if upload else None
    try:
        for field, value in changes.items():
            setattr(emp, field, value)
        if new_photo:
            emp.photo = new_photo
        await db.commit()
        await db.refresh(emp)
    except Exception:
        await db.rollback()
        photos.delete_photo(new_photo)
        raise

    if new_photo and old_photo:
        photos.delete_photo(old_photo)

    logger.info("Updated employee %d (%s)", employee_id, ", ".join(changes) or "photo")
    return EmployeeMutationResponse(
        message="Employee updated successfully",
        employee=EmployeeRead.model_validate(emp),
    )


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> MessageResponse:
    """Hard delete. Visit logs go with the employee, then the photo file."""
    emp = await _get_or_404(db, employee_id)
    photo_path = emp.photo

    removed = await db.execute(
        sa_delete(ActivityLog).where(ActivityLog.employee_id == employee_id)
    )
    await db.delete(emp)
    await db.commit()

    photos.delete_photo(photo_path)
    logger.info(
        "Deleted employee %d (%s) and %d visit logs",
        employee_id,
        emp.name,
        removed.rowcount or 0,
    )
    return MessageResponse(message="Employee deleted successfully")

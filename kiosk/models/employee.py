"""
Employee & ActivityLog models — directory and visit records.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Index, Integer,
                        String)
from sqlalchemy.orm import relationship

from kiosk.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    department: str | None = Column(String(50), nullable=True, index=True)  # type: ignore[assignment]
    position: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    email: str | None = Column(String(320), unique=True, nullable=True, index=True)  # type: ignore[assignment]
    phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    photo: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]  # /uploads/<file>
    slack_user_id: str | None = Column(String(32), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="1", nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    activity_logs = relationship(
        "ActivityLog",
        back_populates="employee",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_employee_checkin", "employee_id", "check_in_time"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    guest_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    guest_phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    guest_email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    purpose: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    check_in_time: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
    check_in_date: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD
    check_out_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]

    employee = relationship("Employee", back_populates="activity_logs")

    @property
    def status(self) -> str:
        return "checked_out" if self.check_out_time is not None else "checked_in"

"""
Notification settings model — singleton table for the dispatcher.

Only one row should ever exist. The admin updates it via the settings API,
and the notify endpoints read it to pick the default channel and message.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from kiosk.db.base import Base


class NotificationSettings(Base):
    __tablename__ = "notification_settings"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    method: str = Column(String(10), nullable=False, default="email")  # type: ignore[assignment]
    # email | sms | slack | teams | both
    enabled: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    custom_message: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

"""Pydantic schemas for visitor notifications."""

from __future__ import annotations

from typing import Literal

from pydantic import EmailStr, Field, field_validator

from kiosk.schemas.activity import ActivityLogRead, GuestFields
from kiosk.schemas.common import CamelModel, UTCDateTime
from kiosk.schemas.employee import blank_email

ChannelSelector = Literal["email", "sms", "slack", "teams", "both"]


class NotifyRequest(GuestFields):
    employee_id: int = Field(ge=1)
    type: ChannelSelector | None = None
    message: str | None = Field(default=None, max_length=500)


class BulkNotifyRequest(GuestFields):
    employee_ids: list[int] = Field(min_length=1, max_length=100)
    type: ChannelSelector | None = None
    message: str | None = Field(default=None, max_length=500)


class ChannelResultRead(CamelModel):
    success: bool
    message: str


class NotifiedEmployee(CamelModel):
    id: int
    name: str
    email: str | None
    phone: str | None


class NotifyResponse(CamelModel):
    success: bool
    message: str
    employee: NotifiedEmployee
    log: ActivityLogRead
    results: dict[str, ChannelResultRead]


class BulkEmployeeResult(CamelModel):
    employee_id: int
    employee_name: str
    success: bool
    results: dict[str, ChannelResultRead]


class BulkSummary(CamelModel):
    total_employees: int
    successful: int
    successful_emails: int
    successful_sms: int
    successful_slack: int
    successful_teams: int


class BulkNotifyResponse(CamelModel):
    message: str
    summary: BulkSummary
    results: list[BulkEmployeeResult]


# ── Settings ───────────────────────────────────────────────────────
class NotificationSettingsRead(CamelModel):
    method: str
    enabled: bool
    custom_message: str | None
    updated_at: UTCDateTime | None = None


class NotificationSettingsUpdate(CamelModel):
    method: ChannelSelector | None = None
    enabled: bool | None = None
    custom_message: str | None = Field(default=None, max_length=500)


class EmailChannelInfo(CamelModel):
    enabled: bool
    host: str
    port: int
    secure: bool
    from_address: str


class SmsChannelInfo(CamelModel):
    enabled: bool
    provider: str


class SlackChannelInfo(CamelModel):
    enabled: bool
    default_channel: str | None


class TeamsChannelInfo(CamelModel):
    enabled: bool


class ChannelsInfo(CamelModel):
    email: EmailChannelInfo
    sms: SmsChannelInfo
    slack: SlackChannelInfo
    teams: TeamsChannelInfo


class NotificationSettingsResponse(NotificationSettingsRead):
    channels: ChannelsInfo


# ── Channel tests ──────────────────────────────────────────────────
class EmailTestRequest(CamelModel):
    email: EmailStr | None = None

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return blank_email(v)


class SmsTestRequest(CamelModel):
    phone: str | None = None


class SlackTestRequest(CamelModel):
    channel: str | None = None


class ChannelTestResponse(CamelModel):
    success: bool
    message: str

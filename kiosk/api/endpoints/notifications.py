"""
Visitor notification endpoints.

- ``POST /notify`` is public (the kiosk calls it): it records the check-in
  first, then runs the dispatcher. Channel failures never fail the request.
- Bulk notify, notification settings and channel tests are admin only.

Notification settings are a singleton row: GET creates it with defaults
on first access, PUT updates it.
"""

import logging
import smtplib

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.api.deps import get_db, require_admin
from kiosk.core.config import settings
from kiosk.core.exceptions import BadRequest, NotFound, ServiceUnavailable
from kiosk.core.rate_limit import limiter
from kiosk.models.employee import Employee
from kiosk.models.notification_settings import NotificationSettings
from kiosk.models.user import User
from kiosk.schemas.notification import (BulkEmployeeResult, BulkNotifyRequest,
                                        BulkNotifyResponse, BulkSummary,
                                        ChannelResultRead, ChannelsInfo,
                                        ChannelTestResponse, EmailChannelInfo,
                                        EmailTestRequest, NotificationSettingsResponse,
                                        NotificationSettingsUpdate,
                                        NotifiedEmployee, NotifyRequest,
                                        NotifyResponse, SlackChannelInfo,
                                        SlackTestRequest, SmsChannelInfo,
                                        SmsTestRequest, TeamsChannelInfo)
from kiosk.services import mailer, notifier, slack, sms, teams, visits
from kiosk.services.notice import VisitorNotice

router = APIRouter(prefix="/notify", tags=["notifications"])
logger = logging.getLogger(__name__)


async def get_notification_settings(db: AsyncSession) -> NotificationSettings:
    """Fetch the singleton settings row, creating it with defaults if absent."""
    result = await db.execute(select(NotificationSettings).limit(1))
    stored = result.scalar_one_or_none()
    if stored is None:
        stored = NotificationSettings(id=1, method="email", enabled=True)
        db.add(stored)
        await db.commit()
        await db.refresh(stored)
        logger.info("Created default notification settings")
    return stored


def _results_read(outcome: notifier.DispatchOutcome) -> dict[str, ChannelResultRead]:
    return {
        channel: ChannelResultRead(success=result.success, message=result.message)
        for channel, result in outcome.results.items()
    }


def _channels_info() -> ChannelsInfo:
    return ChannelsInfo(
        email=EmailChannelInfo(
            enabled=settings.email_configured,
            host=settings.SMTP_HOST or "",
            port=settings.SMTP_PORT,
            secure=settings.SMTP_SECURE,
            from_address=settings.FROM_EMAIL or settings.SMTP_USER or "",
        ),
        sms=SmsChannelInfo(enabled=True, provider=sms.PROVIDER),
        slack=SlackChannelInfo(
            enabled=settings.slack_configured,
            default_channel=settings.SLACK_DEFAULT_CHANNEL,
        ),
        teams=TeamsChannelInfo(enabled=settings.teams_configured),
    )


# ── Kiosk (PUBLIC) ──────────────────────────────────────────────────
@router.post("", response_model=NotifyResponse)
@limiter.limit(settings.RATE_LIMIT_NOTIFY)
async def notify_employee(
    request: Request,
    body: NotifyRequest,
    db: AsyncSession = Depends(get_db),
) -> NotifyResponse:
    """Check the guest in, then notify the employee on the chosen channels."""
    employee = await visits.get_active_employee(db, body.employee_id)
    log = await visits.record_check_in(
        db,
        employee,
        guest_name=body.guest_name,
        guest_phone=body.guest_phone,
        guest_email=body.guest_email,
        purpose=body.purpose,
    )

    stored = await get_notification_settings(db)
    notice = VisitorNotice(
        employee_name=employee.name,
        guest_name=body.guest_name,
        purpose=body.purpose,
        guest_phone=body.guest_phone,
        guest_email=body.guest_email,
        message=body.message,
        arrived_at=visits.utc_now(),
    )
    outcome = await notifier.dispatch(
        db,
        employee,
        notice,
        body.type or stored.method,
        template=stored.custom_message,
        enabled=stored.enabled,
    )

    return NotifyResponse(
        success=outcome.success,
        message=outcome.message,
        employee=NotifiedEmployee(
            id=employee.id,
            name=employee.name,
            email=employee.email,
            phone=employee.phone,
        ),
        log=visits.to_read(log, employee),
        results=_results_read(outcome),
    )


# ── Admin ───────────────────────────────────────────────────────────
@router.post("/bulk", response_model=BulkNotifyResponse)
@limiter.limit(settings.RATE_LIMIT_NOTIFY)
async def notify_bulk(
    request: Request,
    body: BulkNotifyRequest,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> BulkNotifyResponse:
    """Notify several employees about one guest. No visits are recorded."""
    result = await db.execute(
        select(Employee)
        .where(Employee.id.in_(set(body.employee_ids)), Employee.is_active.is_(True))
        .order_by(Employee.id)
    )
    employees = result.scalars().all()
    if not employees:
        raise NotFound("No active employees found")

    stored = await get_notification_settings(db)
    selector = body.type or stored.method
    arrived_at = visits.utc_now()

    entries: list[BulkEmployeeResult] = []
    delivered = {"email": 0, "sms": 0, "slack": 0, "teams": 0}
    for employee in employees:
        notice = VisitorNotice(
            employee_name=employee.name,
            guest_name=body.guest_name,
            purpose=body.purpose,
            guest_phone=body.guest_phone,
            guest_email=body.guest_email,
            message=body.message,
            arrived_at=arrived_at,
        )
        outcome = await notifier.dispatch(
            db,
            employee,
            notice,
            selector,
            template=stored.custom_message,
            enabled=stored.enabled,
        )
        for channel, channel_result in outcome.results.items():
            if channel_result.success:
                delivered[channel] += 1
        entries.append(
            BulkEmployeeResult(
                employee_id=employee.id,
                employee_name=employee.name,
                success=outcome.success,
                results=_results_read(outcome),
            )
        )

    summary = BulkSummary(
        total_employees=len(employees),
        successful=sum(1 for entry in entries if entry.success),
        successful_emails=delivered["email"],
        successful_sms=delivered["sms"],
        successful_slack=delivered["slack"],
        successful_teams=delivered["teams"],
    )
    logger.info(
        "Bulk notification for %s: %d/%d employees reached",
        body.guest_name,
        summary.successful,
        summary.total_employees,
    )
    return BulkNotifyResponse(
        message=f"Bulk notification sent to {summary.successful} of {summary.total_employees} employees",
        summary=summary,
        results=entries,
    )


@router.get("/settings", response_model=NotificationSettingsResponse)
async def read_settings(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> NotificationSettingsResponse:
    stored = await get_notification_settings(db)
    return NotificationSettingsResponse(
        method=stored.method,
        enabled=stored.enabled,
        custom_message=stored.custom_message,
        updated_at=stored.updated_at,
        channels=_channels_info(),
    )


@router.put("/settings", response_model=NotificationSettingsResponse)
async def update_settings(
    body: NotificationSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> NotificationSettingsResponse:
    """Update the default channel, the on/off switch or the message template."""
    stored = await get_notification_settings(db)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("method") is None:
        changes.pop("method", None)
    if changes.get("enabled") is None:
        changes.pop("enabled", None)
    if "custom_message" in changes and changes["custom_message"] is not None:
        changes["custom_message"] = changes["custom_message"].strip() or None

    for field, value in changes.items():
        setattr(stored, field, value)
    await db.commit()
    await db.refresh(stored)

    logger.info("Notification settings updated: %s", sorted(changes))
    return NotificationSettingsResponse(
        method=stored.method,
        enabled=stored.enabled,
        custom_message=stored.custom_message,
        updated_at=stored.updated_at,
        channels=_channels_info(),
    )


# ── Channel tests (admin) ───────────────────────────────────────────
@router.post("/test/email", response_model=ChannelTestResponse)
async def test_email(
    body: EmailTestRequest,
    _admin: User = Depends(require_admin),
) -> ChannelTestResponse:
    if not body.email:
        raise BadRequest("Email address is required")
    if not settings.email_configured:
        raise ServiceUnavailable("Email service not configured")
    try:
        await mailer.send_test_email(body.email)
    except (OSError, smtplib.SMTPException) as exc:
        logger.warning("Test email to %s failed: %s", body.email, exc)
        raise ServiceUnavailable("Failed to send test email") from exc
    return ChannelTestResponse(success=True, message="Test email sent successfully")


@router.post("/test/sms", response_model=ChannelTestResponse)
async def test_sms(
    body: SmsTestRequest,
    _admin: User = Depends(require_admin),
) -> ChannelTestResponse:
    if not body.phone:
        raise BadRequest("Phone number is required")
    await sms.send_test_sms(body.phone)
    return ChannelTestResponse(success=True, message="Test SMS sent successfully")


@router.post("/test/slack", response_model=ChannelTestResponse)
async def test_slack(
    body: SlackTestRequest,
    _admin: User = Depends(require_admin),
) -> ChannelTestResponse:
    if not settings.slack_configured:
        raise ServiceUnavailable("Slack not configured")
    channel = body.channel or settings.SLACK_DEFAULT_CHANNEL
    if not channel:
        raise BadRequest("Slack channel is required")
    try:
        await slack.post_message(channel, "Slack Configuration Test: notifications are working.")
    except slack.SlackError as exc:
        logger.warning("Test Slack message to %s failed: %s", channel, exc)
        raise ServiceUnavailable(f"Failed to send Slack message: {exc}") from exc
    return ChannelTestResponse(success=True, message=f"Test message posted to {channel}")


@router.post("/test/teams", response_model=ChannelTestResponse)
async def test_teams(
    _admin: User = Depends(require_admin),
) -> ChannelTestResponse:
    if not settings.teams_configured:
        raise ServiceUnavailable("Teams webhook not configured")
    try:
        await teams.post_message("Teams Configuration Test: notifications are working.")
    except teams.TeamsError as exc:
        logger.warning("Test Teams message failed: %s", exc)
        raise ServiceUnavailable(str(exc)) from exc
    return ChannelTestResponse(success=True, message="Test message posted to Teams")

"""
Notification dispatcher.

Routes a visitor notice to the channels picked by the selector and
collects one result per attempted channel. Channel failures (missing
contact data, unconfigured services, transport errors, timeouts) are
reported in the results and never raised; nothing is retried.

The Slack channel may resolve the employee's Slack id from their email
and cache it on the employee row.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from kiosk.core.config import settings
from kiosk.models.employee import Employee
from kiosk.services import mailer, slack, sms, teams
from kiosk.services.notice import VisitorNotice

logger = logging.getLogger(__name__)

SELECTOR_CHANNELS: dict[str, tuple[str, ...]] = {
    "email": ("email",),
    "sms": ("sms",),
    "slack": ("slack",),
    "teams": ("teams",),
    "both": ("email", "sms"),
}

_LABELS = {"email": "Email", "sms": "SMS", "slack": "Slack", "teams": "Teams"}


@dataclass
class ChannelResult:
    success: bool
    message: str


@dataclass
class DispatchOutcome:
    results: dict[str, ChannelResult] = field(default_factory=dict)
    disabled: bool = False

    @property
    def success(self) -> bool:
        return any(r.success for r in self.results.values())

    @property
    def message(self) -> str:
        if self.disabled:
            return "Notifications are disabled"
        return "Notification sent successfully" if self.success else "Failed to send notification"


# ── Channels ────────────────────────────────────────────────────────
async def _send_email(employee: Employee, notice: VisitorNotice, template: str | None) -> ChannelResult:
    if not employee.email:
        return ChannelResult(False, "No email address")
    await mailer.send_visitor_email(employee.email, notice, template)
    return ChannelResult(True, "Email sent successfully")


async def _send_sms(employee: Employee, notice: VisitorNotice, template: str | None) -> ChannelResult:
    if not employee.phone:
        return ChannelResult(False, "No phone number")
    await sms.send_visitor_sms(employee.phone, notice, template)
    return ChannelResult(True, "SMS sent successfully")


async def resolve_slack_user(db: AsyncSession, employee: Employee) -> str | None:
    """Return the employee's Slack id, looking it up by email and caching it."""
    if employee.slack_user_id or not employee.email:
        return employee.slack_user_id
    user_id = await slack.lookup_user_id(employee.email)
    if user_id:
        employee.slack_user_id = user_id
        await db.commit()
        logger.info("Cached Slack id %s for employee %d", user_id, employee.id)
    return user_id


async def _send_slack(
    db: AsyncSession, employee: Employee, notice: VisitorNotice, template: str | None
) -> ChannelResult:
    if not settings.slack_configured:
        return ChannelResult(False, "Slack not configured")
    text = notice.render_text(template)
    user_id = await resolve_slack_user(db, employee)
    if user_id:
        await slack.post_message(user_id, text)
        return ChannelResult(True, "Slack direct message sent")
    if settings.SLACK_DEFAULT_CHANNEL:
        await slack.post_message(
            settings.SLACK_DEFAULT_CHANNEL, f"Visitor for {employee.name}: {text}"
        )
        return ChannelResult(True, f"Posted to {settings.SLACK_DEFAULT_CHANNEL}")
    return ChannelResult(False, "No Slack recipient")


async def _send_teams(employee: Employee, notice: VisitorNotice, template: str | None) -> ChannelResult:
    await teams.post_message(f"Visitor for {employee.name}: {notice.render_text(template)}")
    return ChannelResult(True, "Teams message posted")


async def _attempt(channel: str, pending: Awaitable[ChannelResult]) -> ChannelResult:
    label = _LABELS[channel]
    try:
        return await asyncio.wait_for(pending, timeout=settings.NOTIFY_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("%s notification timed out", label)
        return ChannelResult(False, f"{label} delivery timed out")
    except (mailer.EmailNotConfigured, slack.SlackError, teams.TeamsError) as exc:
        logger.warning("%s notification failed: %s", label, exc)
        return ChannelResult(False, str(exc))
    except Exception:
        logger.exception("%s notification failed", label)
        return ChannelResult(False, f"{label} service error")


# ── Entry point ─────────────────────────────────────────────────────
async def dispatch(
    db: AsyncSession,
    employee: Employee,
    notice: VisitorNotice,
    selector: str,
    *,
    template: str | None = None,
    enabled: bool = True,
) -> DispatchOutcome:
    """Attempt every channel of *selector* independently."""
    if not enabled:
        logger.info("Notifications disabled; skipped %s for employee %d", selector, employee.id)
        return DispatchOutcome(disabled=True)

    outcome = DispatchOutcome()
    for channel in SELECTOR_CHANNELS[selector]:
        if channel == "email":
            pending = _send_email(employee, notice, template)
        elif channel == "sms":
            pending = _send_sms(employee, notice, template)
        elif channel == "slack":
            pending = _send_slack(db, employee, notice, template)
        else:
            pending = _send_teams(employee, notice, template)
        outcome.results[channel] = await _attempt(channel, pending)

    logger.info(
        "Notified employee %d via %s: %s",
        employee.id,
        selector,
        {name: r.success for name, r in outcome.results.items()},
    )
    return outcome

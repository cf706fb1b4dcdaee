"""
SMTP email delivery.

smtplib is blocking, so every send runs in a worker thread; the caller
bounds it with a timeout.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage

from kiosk.core.config import settings
from kiosk.services.notice import VisitorNotice

logger = logging.getLogger(__name__)


class EmailNotConfigured(RuntimeError):
    pass


def _sender() -> str:
    return settings.FROM_EMAIL or settings.SMTP_USER or ""


def _deliver(message: EmailMessage) -> None:
    smtp_cls = smtplib.SMTP_SSL if settings.SMTP_SECURE else smtplib.SMTP
    with smtp_cls(
        settings.SMTP_HOST,
        settings.SMTP_PORT,
        timeout=settings.NOTIFY_TIMEOUT_SECONDS,
    ) as smtp:
        if not settings.SMTP_SECURE and settings.SMTP_STARTTLS:
            smtp.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        smtp.send_message(message)


async def _send(message: EmailMessage) -> None:
    if not settings.email_configured:
        raise EmailNotConfigured("Email service not configured")
    await asyncio.to_thread(_deliver, message)


async def send_visitor_email(to: str, notice: VisitorNotice, template: str | None = None) -> None:
    message = EmailMessage()
    message["From"] = _sender()
    message["To"] = to
    message["Subject"] = notice.subject
    message.set_content(notice.render_text(template))
    message.add_alternative(notice.render_html(template), subtype="html")
    await _send(message)
    logger.info("Email notification sent to %s", to)


async def send_test_email(to: str) -> None:
    message = EmailMessage()
    message["From"] = _sender()
    message["To"] = to
    message["Subject"] = "Email Configuration Test"
    sent_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    message.set_content(
        "If you received this email, your email configuration is working correctly!\n"
        f"Sent at: {sent_at}"
    )
    await _send(message)
    logger.info("Test email sent to %s", to)


async def verify_connection() -> bool:
    """Open and close an SMTP session; used at startup."""
    if not settings.email_configured:
        return False

    def _noop() -> None:
        smtp_cls = smtplib.SMTP_SSL if settings.SMTP_SECURE else smtplib.SMTP
        with smtp_cls(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.NOTIFY_TIMEOUT_SECONDS
        ) as smtp:
            smtp.noop()

    try:
        await asyncio.to_thread(_noop)
        return True
    except (OSError, smtplib.SMTPException) as exc:
        logger.warning("Email configuration error: %s", exc)
        return False

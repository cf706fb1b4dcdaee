"""
SMS delivery stub.

No carrier is integrated: messages are logged and reported as sent so the
channel has the same inputs and result shape as email.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from kiosk.services.notice import VisitorNotice

logger = logging.getLogger(__name__)

PROVIDER = "Mock SMS Service (logs only)"


async def send_visitor_sms(to: str, notice: VisitorNotice, template: str | None = None) -> None:
    logger.info("SMS would be sent to %s: %s", to, notice.render_text(template))


async def send_test_sms(to: str) -> None:
    sent_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    logger.info("Test SMS would be sent to %s: SMS Configuration Test - %s", to, sent_at)

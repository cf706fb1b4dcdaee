"""Microsoft Teams incoming-webhook delivery."""

from __future__ import annotations

import logging

import httpx

from kiosk.core.config import settings

logger = logging.getLogger(__name__)


class TeamsError(RuntimeError):
    pass


async def post_message(text: str) -> None:
    if not settings.teams_configured:
        raise TeamsError("Teams webhook not configured")
    async with httpx.AsyncClient(timeout=settings.NOTIFY_TIMEOUT_SECONDS) as client:
        try:
            response = await client.post(settings.TEAMS_WEBHOOK_URL, json={"text": text})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TeamsError(f"Teams webhook failed: {exc}") from exc
    logger.info("Teams notification posted")

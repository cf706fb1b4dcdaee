"""
Slack Web API client (bot token).

Only the two calls the dispatcher needs: resolve a user by email and post
a message to a user (DM) or channel.
"""

from __future__ import annotations

import logging

import httpx

from kiosk.core.config import settings

logger = logging.getLogger(__name__)


class SlackError(RuntimeError):
    """Slack answered ``ok: false`` or could not be reached."""


async def _call(http_method: str, api_method: str, **kwargs) -> dict:
    if not settings.slack_configured:
        raise SlackError("Slack not configured")
    headers = {"Authorization": f"Bearer {settings.SLACK_BOT_TOKEN}"}
    async with httpx.AsyncClient(
        base_url=settings.SLACK_API_URL,
        timeout=settings.NOTIFY_TIMEOUT_SECONDS,
    ) as client:
        try:
            response = await client.request(
                http_method, f"/{api_method}", headers=headers, **kwargs
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as http_err:
            raise SlackError(f"Slack HTTP {http_err.response.status_code}") from http_err
        except (httpx.RequestError, ValueError) as exc:
            raise SlackError(f"Slack request failed: {exc}") from exc

    if not data.get("ok"):
        raise SlackError(data.get("error", "unknown_error"))
    return data


async def lookup_user_id(email: str) -> str | None:
    """Return the Slack user id for *email*, or ``None`` if Slack has no such user."""
    try:
        data = await _call("GET", "users.lookupByEmail", params={"email": email})
    except SlackError as exc:
        if str(exc) == "users_not_found":
            return None
        raise
    return data.get("user", {}).get("id")


async def post_message(channel: str, text: str) -> None:
    await _call("POST", "chat.postMessage", json={"channel": channel, "text": text})
    logger.info("Slack message posted to %s", channel)

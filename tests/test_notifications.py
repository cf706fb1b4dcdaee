"""Tests for visitor notifications, bulk notify, settings and channel tests."""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from kiosk.core.config import settings
from kiosk.models.employee import ActivityLog, Employee
from kiosk.services import mailer, slack, sms, teams
from kiosk.services.notice import VisitorNotice


@pytest.fixture
def sent(monkeypatch):
    """Capture outbound email/SMS/Slack/Teams traffic instead of sending it."""
    outbox: dict[str, list] = {"email": [], "sms": [], "slack": [], "teams": [], "lookups": []}

    async def _email(to, notice, template=None):
        outbox["email"].append((to, notice.render_text(template)))

    async def _sms(to, notice, template=None):
        outbox["sms"].append((to, notice.render_text(template)))

    async def _lookup(email):
        outbox["lookups"].append(email)
        return "U999" if email.endswith("@example.com") else None

    async def _slack_post(channel, text):
        outbox["slack"].append((channel, text))

    async def _teams_post(text):
        outbox["teams"].append(text)

    monkeypatch.setattr(mailer, "send_visitor_email", _email)
    monkeypatch.setattr(sms, "send_visitor_sms", _sms)
    monkeypatch.setattr(slack, "lookup_user_id", _lookup)
    monkeypatch.setattr(slack, "post_message", _slack_post)
    monkeypatch.setattr(teams, "post_message", _teams_post)
    return outbox


def _notify_body(employee_id: int, **extra) -> dict:
    return {"employeeId": employee_id, "guestName": "Ann Guest", "purpose": "Interview", **extra}


async def _log_count(db_session) -> int:
    return (await db_session.execute(select(func.count(ActivityLog.id)))).scalar_one()


# ── POST /notify ────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_notify_both_with_email_only(async_client: AsyncClient, make_employee, sent, db_session):
    """'both' with no phone: email succeeds, SMS fails, overall success."""
    emp = await make_employee(email="host@example.com")

    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="both"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Notification sent successfully"
    assert body["results"]["email"] == {"success": True, "message": "Email sent successfully"}
    assert body["results"]["sms"] == {"success": False, "message": "No phone number"}
    assert body["log"]["status"] == "checked_in"
    assert body["employee"]["email"] == "host@example.com"
    assert sent["email"][0][0] == "host@example.com"
    assert await _log_count(db_session) == 1


@pytest.mark.asyncio
async def test_notify_email_not_configured(async_client: AsyncClient, make_employee, db_session):
    """An unconfigured mail server is a failed result, not a failed request."""
    emp = await make_employee(email="host@example.com")

    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="email"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Failed to send notification"
    assert body["results"]["email"] == {"success": False, "message": "Email service not configured"}
    # The visit is still recorded
    assert await _log_count(db_session) == 1


@pytest.mark.asyncio
async def test_notify_inactive_employee(async_client: AsyncClient, make_employee, db_session):
    """No log and a 404 when the employee is inactive."""
    emp = await make_employee(is_active=False)
    resp = await async_client.post("/api/notify", json=_notify_body(emp.id))
    assert resp.status_code == 404
    assert await _log_count(db_session) == 0


@pytest.mark.asyncio
async def test_notify_rejects_unknown_channel(async_client: AsyncClient, make_employee):
    """The channel selector is validated."""
    emp = await make_employee()
    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="pigeon"))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_slack_id_is_cached(
    async_client: AsyncClient, make_employee, sent, monkeypatch, db_session
):
    """The Slack id is looked up once by email and reused afterwards."""
    monkeypatch.setattr(settings, "SLACK_BOT_TOKEN", "xoxb-test")
    emp = await make_employee(email="host@example.com")

    for _ in range(2):
        resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="slack"))
        assert resp.json()["results"]["slack"] == {
            "success": True,
            "message": "Slack direct message sent",
        }

    assert sent["lookups"] == ["host@example.com"]
    assert [channel for channel, _ in sent["slack"]] == ["U999", "U999"]
    stored = await db_session.get(Employee, emp.id)
    assert stored.slack_user_id == "U999"


@pytest.mark.asyncio
async def test_slack_fallbacks(async_client: AsyncClient, make_employee, sent, monkeypatch):
    """Without a Slack user the default channel is used, else the send fails."""
    emp = await make_employee(email="host@elsewhere.org")

    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="slack"))
    assert resp.json()["results"]["slack"]["message"] == "Slack not configured"

    monkeypatch.setattr(settings, "SLACK_BOT_TOKEN", "xoxb-test")
    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="slack"))
    assert resp.json()["results"]["slack"] == {"success": False, "message": "No Slack recipient"}

    monkeypatch.setattr(settings, "SLACK_DEFAULT_CHANNEL", "#reception")
    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="slack"))
    assert resp.json()["results"]["slack"]["success"] is True
    assert sent["slack"][-1][0] == "#reception"


@pytest.mark.asyncio
async def test_channel_timeout(async_client: AsyncClient, make_employee, monkeypatch):
    """A slow channel is cut off and reported as failed."""
    monkeypatch.setattr(settings, "TEAMS_WEBHOOK_URL", "https://teams.invalid/hook")
    monkeypatch.setattr(settings, "NOTIFY_TIMEOUT_SECONDS", 0.05)

    async def _slow_post(text):
        await asyncio.sleep(1)

    monkeypatch.setattr(teams, "post_message", _slow_post)
    emp = await make_employee()

    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="teams"))
    assert resp.status_code == 200
    assert resp.json()["results"]["teams"] == {
        "success": False,
        "message": "Teams delivery timed out",
    }


@pytest.mark.asyncio
async def test_channel_unexpected_error(async_client: AsyncClient, make_employee, monkeypatch):
    """Unexpected exceptions become a generic service error."""

    async def _boom(to, notice, template=None):
        raise RuntimeError("socket exploded")

    monkeypatch.setattr(mailer, "send_visitor_email", _boom)
    emp = await make_employee(email="host@example.com")

    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="email"))
    assert resp.status_code == 200
    assert resp.json()["results"]["email"] == {"success": False, "message": "Email service error"}


# ── Settings ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_settings_defaults(async_client: AsyncClient, admin_headers, staff_headers):
    """Settings are created on first read and expose channel state without secrets."""
    assert (
        await async_client.get("/api/notify/settings", headers=staff_headers)
    ).status_code == 403

    resp = await async_client.get("/api/notify/settings", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["method"] == "email"
    assert body["enabled"] is True
    assert body["customMessage"] is None
    assert body["channels"]["email"]["enabled"] is False
    assert body["channels"]["sms"]["provider"] == sms.PROVIDER
    assert body["channels"]["slack"]["enabled"] is False
    assert body["channels"]["teams"] == {"enabled": False}


@pytest.mark.asyncio
async def test_disabled_settings_skip_channels(
    async_client: AsyncClient, admin_headers, make_employee, sent, db_session
):
    """With notifications off nothing is sent but the visit is still logged."""
    resp = await async_client.put(
        "/api/notify/settings", json={"enabled": False}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["enabled"] is False

    emp = await make_employee(email="host@example.com")
    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, type="email"))
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Notifications are disabled"
    assert body["results"] == {}
    assert sent["email"] == []
    assert await _log_count(db_session) == 1


@pytest.mark.asyncio
async def test_settings_method_and_template(
    async_client: AsyncClient, admin_headers, make_employee, sent
):
    """The stored method is the default selector and the template shapes the text."""
    await async_client.put(
        "/api/notify/settings",
        json={"method": "sms", "customMessage": "Hi {employee_name}, {guest_name} is waiting"},
        headers=admin_headers,
    )
    emp = await make_employee(name="Jane Doe", phone="+1 555 0100")

    resp = await async_client.post("/api/notify", json=_notify_body(emp.id, message="Lobby B"))
    assert set(resp.json()["results"]) == {"sms"}
    assert sent["sms"] == [("+1 555 0100", "Hi Jane Doe, Ann Guest is waiting\nMessage: Lobby B")]


@pytest.mark.asyncio
async def test_settings_reject_bad_method(async_client: AsyncClient, admin_headers):
    """Only known selectors can be stored."""
    resp = await async_client.put(
        "/api/notify/settings", json={"method": "fax"}, headers=admin_headers
    )
    assert resp.status_code == 422


# ── Bulk ────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_bulk_notify(
    async_client: AsyncClient, admin_headers, make_employee, sent, db_session
):
    """Unknown and inactive ids are dropped; no visits are recorded."""
    first = await make_employee(name="First Host", email="first@example.com")
    second = await make_employee(name="Second Host", email="second@example.com")
    third = await make_employee(name="Third Host")
    gone = await make_employee(name="Gone Host", email="gone@example.com", is_active=False)

    resp = await async_client.post(
        "/api/notify/bulk",
        json={
            "employeeIds": [first.id, second.id, third.id, gone.id, 9999],
            "guestName": "Ann Guest",
            "purpose": "All hands",
            "type": "email",
        },
        headers=admin_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["summary"] == {
        "totalEmployees": 3,
        "successful": 2,
        "successfulEmails": 2,
        "successfulSms": 0,
        "successfulSlack": 0,
        "successfulTeams": 0,
    }
    by_name = {entry["employeeName"]: entry for entry in body["results"]}
    assert by_name["Third Host"]["results"]["email"]["message"] == "No email address"
    assert "Gone Host" not in by_name
    assert await _log_count(db_session) == 0


@pytest.mark.asyncio
async def test_bulk_no_active_employees(async_client: AsyncClient, admin_headers, make_employee):
    """Bulk with nobody reachable is a 404."""
    gone = await make_employee(is_active=False)
    resp = await async_client.post(
        "/api/notify/bulk",
        json={"employeeIds": [gone.id], "guestName": "Ann Guest", "purpose": "Visit"},
        headers=admin_headers,
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "No active employees found"}


@pytest.mark.asyncio
async def test_bulk_requires_admin(async_client: AsyncClient, staff_headers):
    """Bulk notify is admin only."""
    resp = await async_client.post(
        "/api/notify/bulk",
        json={"employeeIds": [1], "guestName": "Ann Guest", "purpose": "Visit"},
        headers=staff_headers,
    )
    assert resp.status_code == 403


# ── Channel tests ───────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_email_channel_check(async_client: AsyncClient, admin_headers):
    """Missing address is 400; an unconfigured server is 503."""
    resp = await async_client.post("/api/notify/test/email", json={}, headers=admin_headers)
    assert resp.status_code == 400

    resp = await async_client.post(
        "/api/notify/test/email", json={"email": "ops@example.com"}, headers=admin_headers
    )
    assert resp.status_code == 503
    assert resp.json() == {"error": "Email service not configured"}


@pytest.mark.asyncio
async def test_sms_channel_check(async_client: AsyncClient, admin_headers):
    """The SMS stub always succeeds when a number is given."""
    resp = await async_client.post(
        "/api/notify/test/sms", json={"phone": "+1 555 0100"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    resp = await async_client.post("/api/notify/test/sms", json={}, headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_slack_and_teams_channel_checks(
    async_client: AsyncClient, admin_headers, sent, monkeypatch
):
    """Slack and Teams tests are 503 until configured."""
    assert (
        await async_client.post("/api/notify/test/slack", json={}, headers=admin_headers)
    ).status_code == 503
    assert (
        await async_client.post("/api/notify/test/teams", headers=admin_headers)
    ).status_code == 503

    monkeypatch.setattr(settings, "SLACK_BOT_TOKEN", "xoxb-test")
    monkeypatch.setattr(settings, "TEAMS_WEBHOOK_URL", "https://teams.invalid/hook")

    assert (
        await async_client.post("/api/notify/test/slack", json={}, headers=admin_headers)
    ).status_code == 400
    resp = await async_client.post(
        "/api/notify/test/slack", json={"channel": "#ops"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert sent["slack"][-1][0] == "#ops"

    resp = await async_client.post("/api/notify/test/teams", headers=admin_headers)
    assert resp.status_code == 200
    assert len(sent["teams"]) == 1


# ── Notice rendering ────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_notice_template_rendering():
    """Unknown placeholders survive and malformed templates fall back to the default."""
    notice = VisitorNotice(employee_name="Jane", guest_name="Ann", purpose="Demo")
    assert notice.render_text("{guest_name} for {employee_name} {room}") == "Ann for Jane {room}"
    assert notice.render_text("{guest_name") == "Ann is here to see you. Purpose: Demo."
    assert notice.subject == "New Visitor: Ann"


@pytest.mark.asyncio
async def test_notice_html_is_escaped():
    """Guest input is escaped in the HTML body."""
    notice = VisitorNotice(
        employee_name="Jane", guest_name="<script>x</script>", purpose="Demo", message="a & b"
    )
    rendered = notice.render_html()
    assert "<script>" not in rendered
    assert "&lt;script&gt;" in rendered
    assert "a &amp; b" in rendered

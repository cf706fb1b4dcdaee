"""
Visitor notice — the message content shared by every channel.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from datetime import datetime, timezone

DEFAULT_TEMPLATE = "{guest_name} is here to see you. Purpose: {purpose}."


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


@dataclass
class VisitorNotice:
    employee_name: str
    guest_name: str
    purpose: str
    guest_phone: str | None = None
    guest_email: str | None = None
    message: str | None = None
    arrived_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def subject(self) -> str:
        return f"New Visitor: {self.guest_name}"

    def render_text(self, template: str | None = None) -> str:
        """Fill the (custom or default) template; unknown placeholders stay as-is."""
        values = _KeepMissing(
            guest_name=self.guest_name,
            employee_name=self.employee_name,
            purpose=self.purpose,
            guest_phone=self.guest_phone or "",
            guest_email=self.guest_email or "",
        )
        try:
            text = (template or DEFAULT_TEMPLATE).format_map(values)
        except (ValueError, IndexError):
            # Malformed braces in a custom template
            text = DEFAULT_TEMPLATE.format_map(values)
        if self.message:
            text = f"{text}\nMessage: {self.message}"
        return text

    def render_html(self, template: str | None = None) -> str:
        esc = html.escape
        rows = [f"<p><strong>Name:</strong> {esc(self.guest_name)}</p>"]
        if self.guest_phone:
            rows.append(f"<p><strong>Phone:</strong> {esc(self.guest_phone)}</p>")
        if self.guest_email:
            rows.append(f"<p><strong>Email:</strong> {esc(self.guest_email)}</p>")
        rows.append(f"<p><strong>Purpose:</strong> {esc(self.purpose)}</p>")
        rows.append(
            f"<p><strong>Time:</strong> {self.arrived_at.strftime('%Y-%m-%d %H:%M UTC')}</p>"
        )
        extra = ""
        if self.message:
            extra = (
                '<div style="background-color: #fff3cd; padding: 15px; border-radius: 5px;">'
                f"<h4>Additional Message</h4><p>{esc(self.message)}</p></div>"
            )
        intro = esc(self.render_text(template).split("\n", 1)[0])
        return (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            "<h2>New Visitor Notification</h2>"
            f"<p>{intro}</p>"
            '<div style="background-color: #f8f9fa; padding: 20px; border-radius: 5px;">'
            "<h3>Visitor Information</h3>"
            f"{''.join(rows)}</div>{extra}"
            '<p style="color: #6c757d; font-size: 14px;">'
            "This is an automated notification from the Guest Check-in System.</p>"
            "</div>"
        )

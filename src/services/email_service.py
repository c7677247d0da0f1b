"""Email service using Resend for lead notifications."""

import html
import logging
from typing import Any

import resend

from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Answer keys already shown as named rows in the notification
_SUMMARY_KEYS = ("name", "email", "phone", "company", "message")


class EmailService:
    """Service for sending transactional emails via Resend."""

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.enabled = settings.notifications_enabled
        self.from_email = settings.email_from_address
        self.frontend_url = settings.frontend_url

    async def send_lead_notification(
        self,
        to_email: str,
        handle: str,
        lead: dict[str, Any],
    ) -> dict[str, Any]:
        """Tell a profile owner that a visitor left their details.

        Never raises; failures are logged and reported in the result.

        Args:
            to_email: Owner's email address.
            handle: Public handle the form was submitted on.
            lead: The stored lead row.

        Returns:
            dict: ``success`` and either ``email_id`` or ``error``.
        """
        if not self.enabled:
            logger.info("Lead notification for %s skipped: email is not configured", handle)
            return {"success": False, "error": "Email notifications are not configured"}

        leads_url = f"{self.frontend_url.rstrip('/')}/dashboard/leads"
        name = lead.get("name") or "Someone"

        rows = [
            ("Name", lead.get("name")),
            ("Email", lead.get("email")),
            ("Phone", lead.get("phone")),
            ("Company", lead.get("company")),
            ("Message", lead.get("message")),
        ]
        for key, value in (lead.get("custom_fields") or {}).items():
            if key in _SUMMARY_KEYS or value in (None, "", False):
                continue
            rows.append((key.replace("_", " ").capitalize(), value))
        rows = [(label, str(value)) for label, value in rows if value]

        table_rows = "".join(
            f'<tr><td style="padding: 6px 12px; color: #6b7280;">{html.escape(label)}</td>'
            f'<td style="padding: 6px 12px;">{html.escape(value)}</td></tr>'
            for label, value in rows
        )

        html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>New lead</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 22px; margin-bottom: 4px;">New lead from /{html.escape(handle)}</h1>
    <p style="color: #6b7280; margin-top: 0;">{html.escape(name)} filled in your contact form.</p>

    <table style="border-collapse: collapse; width: 100%; background: #f9fafb; border-radius: 10px;">
        {table_rows}
    </table>

    <div style="text-align: center; margin: 30px 0;">
        <a href="{leads_url}" style="background: #111827; color: white; padding: 12px 28px; text-decoration: none; border-radius: 6px; font-weight: 600;">
            View leads
        </a>
    </div>
</body>
</html>
"""

        text_content = "\n".join(
            [f"New lead from /{handle}", ""]
            + [f"{label}: {value}" for label, value in rows]
            + ["", f"View leads: {leads_url}"]
        )

        try:
            response = resend.Emails.send({
                "from": self.from_email,
                "to": [to_email],
                "subject": f"New lead: {name}",
                "html": html_content,
                "text": text_content,
                "reply_to": lead.get("email") or None,
            })

            logger.info("Lead notification sent to %s, id: %s", to_email, response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error("Failed to send lead notification to %s: %s", to_email, str(e))
            return {"success": False, "error": str(e)}

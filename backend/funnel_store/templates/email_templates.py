# backend/funnel_store/templates/email_templates.py
import datetime
import html

import pytz

from ..core.config import settings


class TemplateManager:
    """
    Builds the HTML bodies the row store sends: signup and deletion
    notifications for the operators, and the wrapper for dashboard-composed
    mail.
    """

    def __init__(self, timezone_name: str = None):
        self.timezone = pytz.timezone(timezone_name or settings.NOTIFICATION_TIMEZONE)

    def format_time(self, moment: datetime.datetime) -> str:
        """Renders a moment like 'January 10, 2025 at 10:30:00 AM EST' in the notification timezone."""
        if moment.tzinfo is None:
            moment = pytz.utc.localize(moment)
        local = moment.astimezone(self.timezone)
        return local.strftime("%B %d, %Y at %I:%M:%S %p %Z")

    def new_subscriber(self, row: dict, moment: datetime.datetime) -> dict:
        """Notification for a fresh signup."""
        first_name = html.escape(row.get("firstName") or "Unknown")
        email = html.escape(row.get("email") or "")
        source = html.escape(row.get("source") or settings.DEFAULT_SOURCE)
        ip_address = html.escape(row.get("ipAddress") or "Unknown")
        content = f"""
            <h4>Contact Details</h4>
            <p><strong>Name:</strong> {first_name}</p>
            <p><strong>Email:</strong> <a href="mailto:{email}">{email}</a></p>
            <p><strong>Submitted:</strong> {self.format_time(moment)}</p>
            <p><strong>Source:</strong> {source}</p>
            <p><strong>IP Address:</strong> {ip_address}</p>
            <p style="margin-top: 25px;"><a class="button" href="mailto:{email}">Send Welcome Email</a></p>
        """
        return {
            "subject": settings.NOTIFICATION_SUBJECT,
            "html": self.get_base_html(content, "New Newsletter Signup!", "#2AA3D1"),
        }

    def deleted_subscriber(self, row: dict, moment: datetime.datetime) -> dict:
        """Notification for a row removed from the dashboard."""
        first_name = html.escape(row.get("firstName") or "Unknown")
        email = html.escape(row.get("email") or "")
        content = f"""
            <h4>Deleted Contact</h4>
            <p><strong>Name:</strong> {first_name}</p>
            <p><strong>Email:</strong> {email}</p>
            <p><strong>Deleted:</strong> {self.format_time(moment)}</p>
            <p><em>This subscriber has been permanently removed from your email list.</em></p>
        """
        return {
            "subject": settings.DELETE_SUBJECT,
            "html": self.get_base_html(content, "Subscriber Deleted", "#dc3545"),
        }

    def composed_message(self, subject: str, body: str) -> str:
        """Wraps a plain-text body written in the dashboard."""
        paragraphs = html.escape(body).replace("\n", "<br>")
        return self.get_base_html(f"<p>{paragraphs}</p>", subject, "#52C3F1")

    @staticmethod
    def get_base_html(content: str, title: str, accent: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; background-color: #f4f4f4; margin: 0; padding: 0; }}
                .container {{ max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 10px; overflow: hidden; }}
                .header {{ background-color: {accent}; color: #ffffff; padding: 20px; }}
                .header h1 {{ margin: 0; font-size: 24px; }}
                .content {{ padding: 20px; word-wrap: break-word; }}
                .content h4 {{ color: {accent}; margin-top: 0; }}
                .button {{ background-color: {accent}; color: #ffffff !important; padding: 10px 20px; text-decoration: none; border-radius: 5px; display: inline-block; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header"><h1>{html.escape(title)}</h1></div>
                <div class="content">{content}</div>
            </div>
        </body>
        </html>
        """


template_manager = TemplateManager()

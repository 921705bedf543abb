# backend/funnel_store/services/email_service.py
import aiosmtplib
import datetime
import random
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from typing import Optional

from ..core.config import settings
from ..templates.email_templates import template_manager

logger = logging.getLogger(__name__)


class EmailService:
    """Sends operator notifications and dashboard-composed mail over SMTP."""

    def __init__(self, accounts=None, smtp_server=None, smtp_port=None, notification_emails=None):
        self.accounts = settings.SENDER_ACCOUNTS if accounts is None else accounts
        self.smtp_server = smtp_server or settings.SMTP_SERVER
        self.smtp_port = smtp_port or settings.SMTP_PORT
        self.notification_emails = (
            settings.NOTIFICATION_EMAILS if notification_emails is None else notification_emails
        )
        if not self.accounts:
            logger.warning("No SENDER_ACCOUNTS configured; notifications and sendEmail are disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self.accounts)

    def _get_random_account(self) -> dict:
        """Picks a sender from the pool so outgoing mail rotates between accounts."""
        return random.choice(self.accounts)

    async def send_email(
        self,
        receiver_email: str,
        subject: str,
        html_content: str,
        sender_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Sends one HTML message.

        :param receiver_email: recipient address.
        :param subject: message subject.
        :param html_content: full HTML body.
        :param sender_name: display name for From, defaults to FROM_NAME.
        :param reply_to: optional Reply-To address.
        :return: True when the SMTP server accepted the message.
        """
        if not self.enabled:
            logger.warning(f"Email not sent to [{receiver_email}]: no sender accounts configured.")
            return False

        sender_account = self._get_random_account()
        sender_email = sender_account["email"]

        message = MIMEMultipart('alternative')
        message["Subject"] = subject
        message["From"] = formataddr((sender_name or settings.FROM_NAME, sender_email))
        message["To"] = receiver_email
        if reply_to:
            message["Reply-To"] = reply_to
        message.attach(MIMEText(html_content, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_server,
                port=self.smtp_port,
                username=sender_email,
                password=sender_account["password"],
                use_tls=True,
            )
            logger.info(f"Email sent: [{sender_email}] -> [{receiver_email}] | subject: {subject}")
            return True
        except aiosmtplib.SMTPAuthenticationError:
            logger.error(f"Email failed: sender [{sender_email}] was rejected by the SMTP server.")
            return False
        except aiosmtplib.SMTPServerDisconnected:
            # Some providers hang up right after accepting DATA.
            logger.warning(f"Email probably sent (server disconnected early): [{sender_email}] -> [{receiver_email}].")
            return True
        except Exception as e:
            logger.error(f"Email error: [{sender_email}] -> [{receiver_email}]: {e}", exc_info=True)
            return False

    async def notify(self, kind: str, row: dict, moment: Optional[datetime.datetime] = None) -> int:
        """
        Tells every NOTIFICATION_EMAILS recipient about a signup ('new') or a
        deletion ('delete'). A failure for one recipient does not stop the
        others. Returns how many notifications went out.
        """
        if not self.notification_emails or not self.enabled:
            return 0

        moment = moment or datetime.datetime.now(datetime.timezone.utc)
        if kind == "new":
            parts = template_manager.new_subscriber(row, moment)
        elif kind == "delete":
            parts = template_manager.deleted_subscriber(row, moment)
        else:
            raise ValueError(f"Unknown notification kind: {kind}")

        sent = 0
        for recipient in self.notification_emails:
            if await self.send_email(recipient, parts["subject"], parts["html"]):
                sent += 1
            else:
                logger.error(f"{kind} notification for {row.get('email')} was not delivered to {recipient}")
        return sent


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service

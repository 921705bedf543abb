# backend/funnel_store/api/store_endpoint.py
# DESIGNER'S NOTE:
# The whole store is one form-encoded POST endpoint dispatched on `action`,
# the same contract the landing page and the dashboard were written against.
# Every handled request answers HTTP 200 with a {success, message, ...}
# envelope; failures add an `error` code so clients do not have to parse
# the human-readable message.
import datetime
import logging
import re
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Form

from ..core.config import settings
from ..storage.sqlite_store import SubscriberSheet, get_store
from ..services.email_service import EmailService, get_email_service
from ..templates.email_templates import template_manager

router = APIRouter()
logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

INVALID_INPUT = "invalid_input"
DUPLICATE_EMAIL = "duplicate_email"
NOT_FOUND = "not_found"
REMOTE_ERROR = "remote_error"


def envelope(success: bool, message: str, error: Optional[str] = None, **data) -> dict:
    payload = {"success": success, "message": message}
    if error:
        payload["error"] = error
    payload.update(data)
    return payload


def handle_get_subscribers(store: SubscriberSheet) -> dict:
    subscribers = store.list_rows()
    logger.info(f"Listing {len(subscribers)} subscribers")
    return envelope(True, f"Found {len(subscribers)} subscribers", subscribers=subscribers)


def handle_add_subscriber(store: SubscriberSheet, mailer: EmailService, background_tasks: BackgroundTasks,
                          first_name: Optional[str], email: Optional[str],
                          source: Optional[str], ip_address: Optional[str]) -> dict:
    first_name = (first_name or "").strip()
    email = (email or "").strip()

    if not first_name or not email:
        return envelope(False, "Missing required fields", INVALID_INPUT)
    if not EMAIL_PATTERN.match(email):
        return envelope(False, "Invalid email format", INVALID_INPUT)
    if store.email_exists(email):
        logger.info(f"Rejected duplicate signup for {email}")
        return envelope(False, "Email already subscribed", DUPLICATE_EMAIL)

    # The row is stamped with server time; a client-sent timestamp is ignored.
    now = datetime.datetime.now(datetime.timezone.utc)
    row = store.append_row(
        first_name, email, now,
        (source or "").strip() or settings.DEFAULT_SOURCE,
        (ip_address or "").strip() or "Unknown",
    )
    background_tasks.add_task(mailer.notify, "new", row, now)
    return envelope(True, "Successfully submitted!")


def handle_delete_subscriber(store: SubscriberSheet, mailer: EmailService, background_tasks: BackgroundTasks,
                             email: Optional[str], timestamp: Optional[str]) -> dict:
    email = (email or "").strip()
    if not email:
        return envelope(False, "Email is required for deletion", INVALID_INPUT)

    deleted = store.delete_row(email, (timestamp or "").strip() or None, settings.DELETE_TOLERANCE_SECONDS)
    if deleted is None:
        return envelope(False, "Subscriber not found or already deleted", NOT_FOUND, deletedCount=0)

    background_tasks.add_task(mailer.notify, "delete", deleted)
    return envelope(True, "Subscriber deleted successfully", deletedCount=1)


async def handle_send_email(mailer: EmailService, email: Optional[str], subject: Optional[str],
                            body: Optional[str], from_name: Optional[str], reply_to: Optional[str]) -> dict:
    email = (email or "").strip()
    if not EMAIL_PATTERN.match(email):
        return envelope(False, "Invalid email format", INVALID_INPUT)
    if not subject or not body:
        return envelope(False, "Subject and body are required", INVALID_INPUT)
    if not mailer.enabled:
        return envelope(False, "Email sending is not configured", REMOTE_ERROR)

    html_content = template_manager.composed_message(subject, body)
    sent = await mailer.send_email(email, subject, html_content, sender_name=from_name, reply_to=reply_to or None)
    if sent:
        return envelope(True, f"Email sent to {email}")
    return envelope(False, f"Failed to send email to {email}", REMOTE_ERROR)


@router.post("/exec")
async def handle_action(
    background_tasks: BackgroundTasks,
    action: Optional[str] = Form(None),
    first_name: Optional[str] = Form(None, alias="firstName"),
    email: Optional[str] = Form(None),
    timestamp: Optional[str] = Form(None),
    source: Optional[str] = Form(None),
    ip_address: Optional[str] = Form(None, alias="ipAddress"),
    subject: Optional[str] = Form(None),
    body: Optional[str] = Form(None),
    from_name: Optional[str] = Form(None, alias="fromName"),
    reply_to: Optional[str] = Form(None, alias="replyTo"),
    store: SubscriberSheet = Depends(get_store),
    mailer: EmailService = Depends(get_email_service),
):
    """Routes a form submission to the handler named by `action` (default: addSubscriber)."""
    action = (action or "addSubscriber").strip()
    logger.info(f"Request received: action={action}")
    try:
        if action == "getSubscribers":
            return handle_get_subscribers(store)
        if action == "addSubscriber":
            return handle_add_subscriber(store, mailer, background_tasks, first_name, email, source, ip_address)
        if action == "deleteSubscriber":
            return handle_delete_subscriber(store, mailer, background_tasks, email, timestamp)
        if action == "sendEmail":
            return await handle_send_email(mailer, email, subject, body, from_name, reply_to)
        return envelope(False, f"Unknown action: {action}", INVALID_INPUT)
    except Exception as e:
        logger.error(f"Error processing action {action}: {e}", exc_info=True)
        return envelope(False, f"Server error: {e}", REMOTE_ERROR)

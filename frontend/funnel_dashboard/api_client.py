# frontend/funnel_dashboard/api_client.py
# DESIGNER'S NOTE:
# The only module that talks HTTP. Every call returns Ok or Err; transport
# problems never escape as exceptions. getSubscribers is retried on any
# connection error, read timeout or 5xx answer. Adds and deletes are not
# idempotent: they are retried only when the connection was never opened
# (connect timeout or refused), never after the request may have been sent.

import datetime
import logging
import random
import time
from typing import Optional

import requests
from urllib3.exceptions import NewConnectionError

from .config import DashboardConfig
from .models import (
    Err, ErrorKind, Ok, subscriber_from_wire, validate_signup,
)

logger = logging.getLogger(__name__)

MANUAL_ENTRY_IP = "Dashboard - Manual Entry"

_ERROR_CODES = {kind.value: kind for kind in ErrorKind}


def decode_envelope(response: requests.Response):
    """Turns an HTTP response into Ok(payload) or Err(kind, message)."""
    if not 200 <= response.status_code < 300:
        return Err(ErrorKind.REMOTE, f"HTTP error! status: {response.status_code}")
    try:
        payload = response.json()
    except ValueError:
        return Err(ErrorKind.REMOTE, "Malformed response from the store.")
    if not isinstance(payload, dict):
        return Err(ErrorKind.REMOTE, "Malformed response from the store.")

    message = str(payload.get("message") or "")
    if payload.get("success") is True:
        return Ok(payload, message)

    kind = _ERROR_CODES.get(payload.get("error"))
    if kind is None:
        lowered = message.lower()
        if "already subscribed" in lowered:
            kind = ErrorKind.DUPLICATE_EMAIL
        elif "not found" in lowered:
            kind = ErrorKind.NOT_FOUND
        elif "missing required" in lowered or "invalid email" in lowered:
            kind = ErrorKind.VALIDATION
        else:
            kind = ErrorKind.REMOTE
    return Err(kind, message or "Unknown error")


def never_sent(error: requests.ConnectionError) -> bool:
    """True when the connection was never opened, so the store cannot have seen the request."""
    if isinstance(error, requests.ConnectTimeout):
        return True
    cause = error.args[0] if error.args else None
    return isinstance(getattr(cause, "reason", cause), NewConnectionError)


class RemoteStoreClient:
    """Client for the store's single form-encoded POST endpoint."""

    def __init__(self, config: DashboardConfig, sleep=time.sleep):
        self.config = config
        self._sleep = sleep

    def _post(self, fields: dict, timeout: float, idempotent: bool = False):
        attempts = self.config.max_retries + 1
        backoff = self.config.retry_backoff
        action = fields.get("action", "addSubscriber")

        for attempt in range(attempts):
            try:
                response = requests.post(self.config.endpoint_url, data=fields, timeout=timeout)
            except requests.ConnectionError as e:
                if never_sent(e):
                    error, retryable = Err(ErrorKind.REMOTE, f"Could not reach the store: {e}"), True
                else:
                    error = Err(ErrorKind.REMOTE, f"Connection lost; the store may have applied the request: {e}")
                    retryable = idempotent
            except requests.Timeout:
                error, retryable = Err(ErrorKind.REMOTE, "Request timed out.", timed_out=True), idempotent
            except requests.RequestException as e:
                return Err(ErrorKind.REMOTE, f"Request failed: {e}")
            else:
                if response.status_code >= 500 and idempotent and attempt < attempts - 1:
                    logger.warning(f"{action}: store answered {response.status_code} (attempt {attempt + 1})")
                else:
                    return decode_envelope(response)
                error, retryable = Err(ErrorKind.REMOTE, f"HTTP error! status: {response.status_code}"), True

            if not retryable or attempt == attempts - 1:
                logger.error(f"{action} failed after {attempt + 1} attempt(s): {error.message}")
                return error

            sleep_time = backoff * (2 ** attempt) + random.uniform(0, backoff)
            logger.info(f"{action}: {error.message} Retrying in {sleep_time:.2f} seconds...")
            self._sleep(sleep_time)

    def list_subscribers(self):
        """Fetches every row. Ok(list[Subscriber]) or Err."""
        result = self._post({"action": "getSubscribers"}, self.config.load_timeout, idempotent=True)
        if not result.ok:
            return result

        rows = result.value.get("subscribers")
        if not isinstance(rows, list):
            return Err(ErrorKind.REMOTE, result.message or "Failed to load subscribers")

        now = datetime.datetime.now(datetime.timezone.utc)
        records = []
        for raw in rows:
            record = subscriber_from_wire(raw, self.config.default_source, now)
            if record is not None:
                records.append(record)
        logger.info(f"Loaded {len(records)} subscribers ({len(rows) - len(records)} dropped)")
        return Ok(records, result.message)

    def add_subscriber(self, first_name: str, email: str, source: Optional[str] = None,
                       ip_address: str = MANUAL_ENTRY_IP, timeout: Optional[float] = None):
        """Validates locally, then appends a row. Ok(None) or Err."""
        invalid = validate_signup(first_name, email)
        if invalid:
            return invalid

        fields = {
            "action": "addSubscriber",
            "firstName": first_name.strip(),
            "email": email.strip(),
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "source": source or self.config.default_source,
            "ipAddress": ip_address,
        }
        result = self._post(fields, timeout or self.config.request_timeout)
        if result.ok:
            logger.info(f"Added subscriber {fields['email']}")
            return Ok(None, result.message)
        return result

    def delete_subscriber(self, email: str, timestamp: Optional[datetime.datetime] = None):
        """Deletes at most one row. Ok(count) or Err; zero rows is NOT_FOUND."""
        fields = {"action": "deleteSubscriber", "email": email}
        if timestamp is not None:
            fields["timestamp"] = timestamp.isoformat()

        result = self._post(fields, self.config.request_timeout)
        if not result.ok:
            return result
        try:
            count = int(result.value.get("deletedCount", 1))
        except (TypeError, ValueError):
            count = 1
        if count < 1:
            return Err(ErrorKind.NOT_FOUND, result.message or "Subscriber not found")
        return Ok(count, result.message)

    def send_email(self, to: str, subject: str, body: str,
                   sender_name: Optional[str] = None, reply_to: Optional[str] = None):
        fields = {
            "action": "sendEmail",
            "email": to,
            "subject": subject,
            "body": body,
            "fromName": sender_name or self.config.sender_name,
            "replyTo": reply_to if reply_to is not None else self.config.reply_to,
        }
        result = self._post(fields, self.config.request_timeout)
        if result.ok:
            return Ok(None, result.message)
        return result

    def check_connection(self) -> str:
        """One-line status for the settings tab."""
        result = self.list_subscribers()
        if result.ok:
            return f"🟢 Connected: {len(result.value)} subscribers in the store"
        return f"🔴 Connection failed: {result.message}"


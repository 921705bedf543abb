import datetime
import time

import pytest

from funnel_dashboard.config import DashboardConfig
from funnel_dashboard.models import Err, ErrorKind, Ok, Subscriber
from funnel_store.storage.sqlite_store import SubscriberSheet

UTC = datetime.timezone.utc


def make_subscriber(first_name, email, day=10, hour=12, source="Landing Page"):
    return Subscriber(first_name, email, datetime.datetime(2025, 1, day, hour, 0, tzinfo=UTC), source)


class FakeMailer:
    """Stands in for EmailService; records what would have been sent."""

    def __init__(self, enabled=True, deliver=True):
        self.enabled = enabled
        self.deliver = deliver
        self.notifications = []
        self.sent = []

    async def notify(self, kind, row, moment=None):
        self.notifications.append((kind, row))
        return 1

    async def send_email(self, receiver_email, subject, html_content, sender_name=None, reply_to=None):
        self.sent.append({"to": receiver_email, "subject": subject, "html": html_content,
                          "sender_name": sender_name, "reply_to": reply_to})
        return self.deliver


class FakeStoreClient:
    """In-memory RemoteStoreClient with the same Ok/Err surface."""

    def __init__(self, records=None, fail_emails=(), missing_emails=(), list_error=None):
        self.records = list(records or [])
        self.fail_emails = set(fail_emails)
        self.missing_emails = set(missing_emails)
        self.list_error = list_error
        self.deleted = []
        self.added = []
        self.sent = []

    def list_subscribers(self):
        if self.list_error is not None:
            return self.list_error
        return Ok(list(self.records), "")

    def add_subscriber(self, first_name, email, source=None, ip_address=None, timeout=None):
        if any(r.email.casefold() == email.casefold() for r in self.records):
            return Err(ErrorKind.DUPLICATE_EMAIL, "Email already subscribed")
        self.added.append((first_name, email, source, ip_address))
        self.records.append(Subscriber(first_name, email, datetime.datetime.now(UTC), source or "Landing Page"))
        return Ok(None, "Successfully submitted!")

    def delete_subscriber(self, email, timestamp=None):
        if email in self.fail_emails:
            return Err(ErrorKind.REMOTE, "Could not reach the store")
        if email in self.missing_emails:
            return Err(ErrorKind.NOT_FOUND, "Subscriber not found or already deleted")
        self.deleted.append((email, timestamp))
        self.records = [r for r in self.records if not (r.email == email and r.timestamp == timestamp)]
        return Ok(1, "Subscriber deleted successfully")

    def send_email(self, to, subject, body, sender_name=None, reply_to=None):
        self.sent.append({"to": to, "subject": subject, "body": body})
        return Ok(None, f"Email sent to {to}")

    def check_connection(self):
        return f"🟢 Connected: {len(self.records)} subscribers in the store"


@pytest.fixture
def sheet(tmp_path):
    return SubscriberSheet(str(tmp_path / "store.db"))


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def config(tmp_path):
    return DashboardConfig(
        endpoint_url="http://store.test/exec",
        settings_path=str(tmp_path / "settings.json"),
        retry_backoff=0.0,
        sender_email="owner@example.com",
    )


@pytest.fixture
def people():
    return [
        make_subscriber("John", "john@example.com", day=10, hour=10),
        make_subscriber("sarah", "Sarah@Example.com", day=10, hour=14),
        make_subscriber("Michael", "michael@example.com", day=9, hour=9),
        make_subscriber("Emma", "emma@example.com", day=9, hour=16, source="Dashboard"),
        make_subscriber("David", "david@example.com", day=8, hour=11),
    ]


@pytest.fixture
def local_zone(monkeypatch):
    """Switches the process-local timezone for one test (POSIX only)."""
    def use(name):
        monkeypatch.setenv("TZ", name)
        time.tzset()

    yield use
    monkeypatch.undo()
    time.tzset()

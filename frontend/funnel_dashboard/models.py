# frontend/funnel_dashboard/models.py
# DESIGNER'S NOTE:
# Everything the store sends is decoded here, at the boundary, into typed
# records and an Ok/Err result. Nothing downstream looks at raw envelopes.

import datetime
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

T = TypeVar("T")


class ErrorKind(enum.Enum):
    VALIDATION = "invalid_input"
    DUPLICATE_EMAIL = "duplicate_email"
    NOT_FOUND = "not_found"
    REMOTE = "remote_error"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class Subscriber:
    first_name: str
    email: str
    timestamp: datetime.datetime
    source: str
    ip_address: Optional[str] = field(default=None, compare=False)

    @property
    def key(self) -> tuple:
        """Stable identity: the store has no row id, so email + signup time."""
        return (self.email.casefold(), self.timestamp)

    def to_wire(self) -> dict:
        return {
            "firstName": self.first_name,
            "email": self.email,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
        }


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_signup(first_name: str, email: str) -> Optional[Err]:
    """Returns an Err for a blank name, blank email or malformed email; None when valid."""
    if not first_name or not first_name.strip():
        return Err(ErrorKind.VALIDATION, "Please enter a first name.")
    if not email or not email.strip():
        return Err(ErrorKind.VALIDATION, "Please enter an email address.")
    if not is_valid_email(email.strip()):
        return Err(ErrorKind.VALIDATION, "Please enter a valid email address.")
    return None


def parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    """ISO-8601 (with or without 'Z') to an aware datetime; naive values are taken as UTC."""
    if isinstance(value, datetime.datetime):
        parsed = value
    else:
        try:
            parsed = datetime.datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def subscriber_from_wire(raw: Any, default_source: str,
                         now: Optional[datetime.datetime] = None) -> Optional[Subscriber]:
    """
    Builds a Subscriber from one `subscribers` entry, or None when the entry
    is unusable (not an object, no email, unparseable timestamp).
    A missing name becomes "Unknown" and a missing timestamp becomes now.
    """
    if not isinstance(raw, dict):
        logger.warning(f"Dropping non-object subscriber entry: {raw!r}")
        return None

    email = str(raw.get("email") or "").strip()
    if not email:
        logger.warning(f"Dropping subscriber entry without email: {raw!r}")
        return None

    stamp = raw.get("timestamp")
    if stamp in (None, ""):
        timestamp = now or datetime.datetime.now(datetime.timezone.utc)
    else:
        timestamp = parse_timestamp(stamp)
        if timestamp is None:
            logger.warning(f"Dropping subscriber {email}: bad timestamp {stamp!r}")
            return None

    return Subscriber(
        first_name=str(raw.get("firstName") or "").strip() or "Unknown",
        email=email,
        timestamp=timestamp,
        source=str(raw.get("source") or "").strip() or default_source,
        ip_address=str(raw.get("ipAddress") or "").strip() or None,
    )


def placeholder_subscribers() -> list[Subscriber]:
    """Sample rows shown when the store cannot be reached on load."""
    def stamp(day, hour, minute):
        return datetime.datetime(2025, 1, day, hour, minute, tzinfo=datetime.timezone.utc)

    source = "Landing Page"
    return [
        Subscriber("John", "john.doe@example.com", stamp(10, 10, 30), source),
        Subscriber("Sarah", "sarah.smith@example.com", stamp(10, 14, 45), source),
        Subscriber("Michael", "michael.jones@example.com", stamp(9, 9, 15), source),
        Subscriber("Emma", "emma.wilson@example.com", stamp(9, 16, 20), source),
        Subscriber("David", "david.brown@example.com", stamp(8, 11, 0), source),
    ]

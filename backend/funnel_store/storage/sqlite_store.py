# backend/funnel_store/storage/sqlite_store.py
import sqlite3
import os
import threading
import logging
import datetime
from typing import Optional
from ..core.config import settings

logger = logging.getLogger(__name__)


def resolve_db_file(db_url: str) -> str:
    """Maps a sqlite:///./name.db URL to an absolute file under backend/."""
    if not db_url.startswith("sqlite:///"):
        raise ValueError("DATABASE_URL must look like 'sqlite:///./path/to/your.db'")
    relative_path = db_url[len("sqlite:///"):]
    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
    return os.path.join(base_dir, os.path.basename(relative_path))


# Serialises writers across request threads.
lock = threading.Lock()


def parse_timestamp(value) -> Optional[datetime.datetime]:
    """Parses an ISO-8601 string into an aware UTC datetime, or None."""
    if isinstance(value, datetime.datetime):
        parsed = value
    elif not value:
        return None
    else:
        try:
            parsed = datetime.datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


class SubscriberSheet:
    """
    A spreadsheet-like, append-only table of signups backed by SQLite.

    Rows are kept in insertion order and carry no id the clients can see,
    just like the sheet the dashboard was first built against:
    {
        "firstName": TEXT,
        "email": TEXT,
        "timestamp": TEXT (ISO-8601, UTC),
        "source": TEXT,
        "ipAddress": TEXT
    }
    """
    def __init__(self, db_path: str):
        self._db_path = db_path
        self._init_db()

    def _get_connection(self):
        return sqlite3.connect(self._db_path, check_same_thread=False)

    def _init_db(self):
        with lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS subscribers (
                        row_id INTEGER PRIMARY KEY AUTOINCREMENT,
                        first_name TEXT NOT NULL,
                        email TEXT NOT NULL,
                        timestamp TEXT NOT NULL,
                        source TEXT,
                        ip_address TEXT
                    )
                """)
                cursor.execute("CREATE INDEX IF NOT EXISTS idx_subscribers_email ON subscribers (lower(email))")
                conn.commit()
                logger.info(f"Row store ready at {self._db_path}")
            finally:
                conn.close()

    def append_row(self, first_name: str, email: str, timestamp: datetime.datetime,
                   source: str, ip_address: str) -> dict:
        """Appends one signup row and returns it in wire format."""
        stamp = timestamp.astimezone(datetime.timezone.utc).isoformat()
        with lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    "INSERT INTO subscribers (first_name, email, timestamp, source, ip_address) VALUES (?, ?, ?, ?, ?)",
                    (first_name, email, stamp, source, ip_address),
                )
                conn.commit()
            finally:
                conn.close()
        logger.info(f"Row store: appended {email} (source: {source})")
        return {"firstName": first_name, "email": email, "timestamp": stamp,
                "source": source, "ipAddress": ip_address}

    def email_exists(self, email: str) -> bool:
        """Case-insensitive existence check."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("SELECT 1 FROM subscribers WHERE lower(email) = lower(?) LIMIT 1", (email,))
            return cursor.fetchone() is not None
        finally:
            conn.close()

    def list_rows(self) -> list[dict]:
        conn = self._get_connection()
        conn.row_factory = sqlite3.Row
        try:
            cursor = conn.execute(
                "SELECT first_name, email, timestamp, source, ip_address FROM subscribers ORDER BY row_id"
            )
            return [
                {
                    "firstName": row["first_name"] or "",
                    "email": row["email"] or "",
                    "timestamp": row["timestamp"] or "",
                    "source": row["source"] or "",
                    "ipAddress": row["ip_address"] or "",
                }
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def delete_row(self, email: str, timestamp: Optional[str] = None,
                   tolerance_seconds: int = 60) -> Optional[dict]:
        """
        Deletes at most one row for the given email.

        With a timestamp, the first row whose own timestamp lies within
        tolerance_seconds of it is removed. Without one, the first row for
        the email is removed. Returns the deleted row, or None.
        """
        wanted = parse_timestamp(timestamp) if timestamp else None
        if timestamp and wanted is None:
            logger.warning(f"Row store: unparseable delete timestamp {timestamp!r} for {email}")
            return None

        with lock:
            conn = self._get_connection()
            conn.row_factory = sqlite3.Row
            try:
                cursor = conn.execute(
                    "SELECT row_id, first_name, email, timestamp FROM subscribers WHERE lower(email) = lower(?) ORDER BY row_id",
                    (email,),
                )
                target = None
                for row in cursor.fetchall():
                    if wanted is None:
                        target = row
                        break
                    row_time = parse_timestamp(row["timestamp"])
                    if row_time and abs((row_time - wanted).total_seconds()) < tolerance_seconds:
                        target = row
                        break

                if target is None:
                    return None

                conn.execute("DELETE FROM subscribers WHERE row_id = ?", (target["row_id"],))
                conn.commit()
                logger.info(f"Row store: deleted row {target['row_id']} for {email}")
                return {"firstName": target["first_name"], "email": target["email"],
                        "timestamp": target["timestamp"]}
            finally:
                conn.close()


_store: Optional[SubscriberSheet] = None


def get_store() -> SubscriberSheet:
    """Returns the process-wide row store, creating it on first use."""
    global _store
    if _store is None:
        _store = SubscriberSheet(resolve_db_file(settings.DATABASE_URL))
    return _store

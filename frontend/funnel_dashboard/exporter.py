# frontend/funnel_dashboard/exporter.py

import csv
import datetime
import os
import tempfile

import pandas as pd

from .models import Subscriber

EXPORT_COLUMNS = ["First Name", "Email", "Signup Date", "Source"]


def format_date(moment: datetime.datetime) -> str:
    """Display form, in local time: 'Jan 10, 2025, 10:30 AM'."""
    return moment.astimezone().strftime("%b %d, %Y, %I:%M %p")


def subscribers_frame(records: list[Subscriber]) -> pd.DataFrame:
    rows = [[r.first_name, r.email, format_date(r.timestamp), r.source] for r in records]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_subscribers(records: list[Subscriber], export_format: str = "csv",
                       directory: str = None, today: datetime.date = None) -> str:
    """Writes the records to subscribers-YYYY-MM-DD.<csv|json> and returns the path."""
    if export_format not in ("csv", "json"):
        raise ValueError(f"Unsupported export format: {export_format}")

    directory = directory or tempfile.mkdtemp(prefix="funnel_export_")
    os.makedirs(directory, exist_ok=True)
    today = today or datetime.date.today()
    path = os.path.join(directory, f"subscribers-{today.isoformat()}.{export_format}")

    frame = subscribers_frame(records)
    if export_format == "csv":
        frame.to_csv(path, index=False, quoting=csv.QUOTE_ALL)
    else:
        frame.to_json(path, orient="records", indent=2, force_ascii=False)
    return path

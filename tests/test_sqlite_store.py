import datetime

import pytest

from funnel_store.storage.sqlite_store import parse_timestamp, resolve_db_file

UTC = datetime.timezone.utc
T0 = datetime.datetime(2025, 1, 10, 10, 30, tzinfo=UTC)


def test_resolve_db_file_rejects_other_schemes():
    with pytest.raises(ValueError):
        resolve_db_file("postgresql://localhost/db")
    assert resolve_db_file("sqlite:///./x.db").endswith("x.db")


def test_parse_timestamp_variants():
    assert parse_timestamp("2025-01-10T10:30:00Z") == T0
    assert parse_timestamp("2025-01-10T10:30:00") == T0
    assert parse_timestamp("not a date") is None
    assert parse_timestamp("") is None


def test_rows_come_back_in_insertion_order(sheet):
    sheet.append_row("John", "john@example.com", T0, "Landing Page", "1.2.3.4")
    sheet.append_row("Sarah", "sarah@example.com", T0 - datetime.timedelta(days=1), "Dashboard", "Unknown")

    rows = sheet.list_rows()
    assert [r["email"] for r in rows] == ["john@example.com", "sarah@example.com"]
    assert rows[0] == {"firstName": "John", "email": "john@example.com",
                       "timestamp": T0.isoformat(), "source": "Landing Page", "ipAddress": "1.2.3.4"}


def test_email_exists_ignores_case(sheet):
    sheet.append_row("John", "John@Example.com", T0, "Landing Page", "Unknown")
    assert sheet.email_exists("john@example.COM")
    assert not sheet.email_exists("jane@example.com")


def test_delete_by_timestamp_removes_only_the_matching_row(sheet):
    sheet.append_row("John", "john@example.com", T0, "Landing Page", "Unknown")
    sheet.append_row("John", "john@example.com", T0 + datetime.timedelta(hours=2), "Landing Page", "Unknown")

    deleted = sheet.delete_row("JOHN@example.com", (T0 + datetime.timedelta(hours=2, seconds=20)).isoformat())
    assert deleted["timestamp"] == (T0 + datetime.timedelta(hours=2)).isoformat()
    assert [r["timestamp"] for r in sheet.list_rows()] == [T0.isoformat()]


def test_delete_outside_tolerance_finds_nothing(sheet):
    sheet.append_row("John", "john@example.com", T0, "Landing Page", "Unknown")
    assert sheet.delete_row("john@example.com", (T0 + datetime.timedelta(seconds=90)).isoformat()) is None
    assert len(sheet.list_rows()) == 1


def test_delete_without_timestamp_takes_the_first_match(sheet):
    sheet.append_row("John", "john@example.com", T0, "Landing Page", "Unknown")
    sheet.append_row("John", "john@example.com", T0 + datetime.timedelta(days=1), "Landing Page", "Unknown")

    deleted = sheet.delete_row("john@example.com")
    assert deleted["timestamp"] == T0.isoformat()
    assert len(sheet.list_rows()) == 1


def test_delete_with_garbage_timestamp_deletes_nothing(sheet):
    sheet.append_row("John", "john@example.com", T0, "Landing Page", "Unknown")
    assert sheet.delete_row("john@example.com", "yesterday") is None
    assert len(sheet.list_rows()) == 1

import csv
import datetime
import json

import pytest

from funnel_dashboard.exporter import EXPORT_COLUMNS, export_subscribers
from funnel_dashboard.templating import EMAIL_TEMPLATES, render_template, template_choices


def test_render_substitutes_known_tokens():
    assert render_template("Hi {{firstName}}!", {"firstName": "Ann"}) == "Hi Ann!"


def test_render_leaves_unknown_and_empty_tokens():
    text = "Hi {{firstName}}, {{company}}"
    assert render_template(text, {"firstName": ""}) == text


def test_render_is_single_pass():
    assert render_template("{{firstName}}", {"firstName": "{{firstName}}"}) == "{{firstName}}"


def test_every_template_is_personalised():
    assert all("{{firstName}}" in body for body in EMAIL_TEMPLATES.values())
    assert template_choices()[-1] == "custom"


def test_export_csv(tmp_path, people):
    path = export_subscribers(people, "csv", directory=str(tmp_path), today=datetime.date(2025, 1, 10))
    assert path.endswith("subscribers-2025-01-10.csv")

    with open(path, newline="", encoding="utf-8") as f:
        first_line = f.readline()
        f.seek(0)
        rows = list(csv.reader(f))
    assert first_line.startswith('"First Name","Email"')
    assert rows[0] == EXPORT_COLUMNS
    assert rows[1][:2] == ["John", "john@example.com"]
    assert len(rows) == len(people) + 1


def test_export_json(tmp_path, people):
    path = export_subscribers(people[:2], "json", directory=str(tmp_path), today=datetime.date(2025, 1, 10))
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert [row["Email"] for row in data] == ["john@example.com", "Sarah@Example.com"]
    assert set(data[0]) == set(EXPORT_COLUMNS)


def test_export_rejects_unknown_format(tmp_path, people):
    with pytest.raises(ValueError):
        export_subscribers(people, "xlsx", directory=str(tmp_path))

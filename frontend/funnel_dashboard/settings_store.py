# frontend/funnel_dashboard/settings_store.py
# DESIGNER'S NOTE:
# Operator settings and saved drafts live in a small JSON key-value file,
# under fixed key names, so they survive restarts of the dashboard.

import datetime
import json
import logging
import os
import threading

logger = logging.getLogger(__name__)

STORE_URL = "fd_store_url"
FROM_NAME = "fd_from_name"
FROM_EMAIL = "fd_from_email"
REPLY_TO = "fd_reply_to"
EXPORT_FORMAT = "fd_export_format"
DRAFTS = "fd_email_drafts"

SETTING_KEYS = (STORE_URL, FROM_NAME, FROM_EMAIL, REPLY_TO, EXPORT_FORMAT)

DEFAULT_SETTINGS_PATH = os.path.join(os.path.expanduser("~"), ".funnel_dashboard", "settings.json")


class SettingsStore:
    """Persistent key-value storage backed by one JSON file."""

    def __init__(self, path: str = DEFAULT_SETTINGS_PATH):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def load_settings(self) -> dict:
        """Returns only the operator settings (no drafts)."""
        data = self._read()
        return {key: data[key] for key in SETTING_KEYS if key in data}

    def save_settings(self, values: dict):
        unknown = set(values) - set(SETTING_KEYS)
        if unknown:
            raise KeyError(f"Unknown setting keys: {sorted(unknown)}")
        with self._lock:
            data = self._read()
            data.update(values)
            self._write(data)
        logger.info(f"Saved settings to {self.path}")

    def save_draft(self, subject: str, content: str) -> dict:
        draft = {
            "subject": subject,
            "content": content,
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }
        with self._lock:
            data = self._read()
            data.setdefault(DRAFTS, []).append(draft)
            self._write(data)
        return draft

    def list_drafts(self) -> list[dict]:
        return list(self._read().get(DRAFTS, []))

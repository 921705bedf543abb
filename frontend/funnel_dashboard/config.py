# frontend/funnel_dashboard/config.py
# DESIGNER'S NOTE:
# Configuration is an immutable value built once in main() from the command
# line and the persisted operator settings, then handed to the client, the
# handlers and the bulk-delete orchestrator. Saving settings produces a new
# value instead of mutating a shared one.

import argparse
import dataclasses
from dataclasses import dataclass
from typing import Optional

from . import settings_store

EXPORT_FORMATS = ("csv", "json")


@dataclass(frozen=True)
class DashboardConfig:
    endpoint_url: str
    run_port: int = 10101
    page: str = "dashboard"
    settings_path: str = settings_store.DEFAULT_SETTINGS_PATH

    request_timeout: float = 15.0
    load_timeout: float = 10.0
    max_retries: int = 3
    retry_backoff: float = 0.5
    max_concurrent_requests: int = 4

    sender_name: str = "Signup Funnel"
    sender_email: str = ""
    reply_to: str = ""
    export_format: str = "csv"
    default_source: str = "Landing Page"

    def with_settings(self, values: dict) -> "DashboardConfig":
        """Returns a copy with persisted setting keys applied over this config."""
        changes = {}
        if values.get(settings_store.STORE_URL):
            changes["endpoint_url"] = values[settings_store.STORE_URL]
        if values.get(settings_store.FROM_NAME):
            changes["sender_name"] = values[settings_store.FROM_NAME]
        if settings_store.FROM_EMAIL in values:
            changes["sender_email"] = values[settings_store.FROM_EMAIL] or ""
        if settings_store.REPLY_TO in values:
            changes["reply_to"] = values[settings_store.REPLY_TO] or ""
        if values.get(settings_store.EXPORT_FORMAT) in EXPORT_FORMATS:
            changes["export_format"] = values[settings_store.EXPORT_FORMAT]
        return dataclasses.replace(self, **changes)

    def to_settings(self) -> dict:
        return {
            settings_store.STORE_URL: self.endpoint_url,
            settings_store.FROM_NAME: self.sender_name,
            settings_store.FROM_EMAIL: self.sender_email,
            settings_store.REPLY_TO: self.reply_to,
            settings_store.EXPORT_FORMAT: self.export_format,
        }


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Signup Funnel Dashboard Launcher")
    parser.add_argument("--port", type=int, default=10101,
                        help="Port to run the frontend server on (default: 10101)")
    parser.add_argument("--bnport", type=int, default=8421,
                        help="Port of the store backend (default: 8421)")
    parser.add_argument("--bnserver", type=str, default="http://127.0.0.1",
                        help="Store backend address (default: http://127.0.0.1)")
    parser.add_argument("--page", choices=["dashboard", "signup"], default="dashboard",
                        help="Which app to serve: the internal dashboard or the public signup page")
    parser.add_argument("--settings", type=str, default=settings_store.DEFAULT_SETTINGS_PATH,
                        help="Path of the persisted settings file")
    parser.add_argument("--max-concurrency", type=int, default=4,
                        help="Upper bound on in-flight store requests during bulk actions")

    # parse_known_args so Gradio's own flags in reload mode do not break startup
    args, _ = parser.parse_known_args(argv)
    return args


def build_config(args: argparse.Namespace, store: settings_store.SettingsStore) -> DashboardConfig:
    """Command line first, then persisted settings on top."""
    base = DashboardConfig(
        endpoint_url=f"{args.bnserver}:{args.bnport}/exec",
        run_port=args.port,
        page=args.page,
        settings_path=store.path,
        max_concurrent_requests=max(1, args.max_concurrency),
    )
    return base.with_settings(store.load_settings())

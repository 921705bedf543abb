# frontend/funnel_dashboard/handlers.py
# DESIGNER'S NOTE:
# This file is the "controller" layer. Callbacks are methods on a controller
# that owns the config, the store client, the subscriber table and the bulk
# delete orchestrator, so nothing here reads process-wide globals. Gradio
# injects gr.SelectData into bound methods by their annotations.

import datetime
import logging
import re
from concurrent.futures import ThreadPoolExecutor

import gradio as gr
import pandas as pd

from .api_client import RemoteStoreClient
from .bulk_delete import BulkDeleteBusy, BulkDeleteOrchestrator, BulkDeleteState
from .config import EXPORT_FORMATS, DashboardConfig
from .exporter import export_subscribers, format_date
from .models import ErrorKind, Subscriber, is_valid_email, placeholder_subscribers, validate_signup
from .settings_store import SettingsStore
from .state import SORT_COLUMNS, SubscriberTable
from .templating import EMAIL_TEMPLATES, SAMPLE_VALUES, render_template

logger = logging.getLogger(__name__)

TABLE_HEADERS = ["✓", "First Name", "Email", "Signed Up", "Source"]
_HEADER_FOR_COLUMN = {"firstName": "First Name", "email": "Email", "timestamp": "Signed Up", "source": "Source"}

# Greeting name for custom recipients who are not in the subscriber list.
FALLBACK_FIRST_NAME = "there"

SIGNUP_MESSAGES = {
    "success": "Welcome to the community! You will receive our next newsletter!",
    "first_name": "Please enter your first name.",
    "email": "Please enter a valid email address.",
    "duplicate": "This email address is already subscribed.",
    "network": "Network error. Please try again later.",
    "timeout": "Request timed out. Please try again.",
}


def _now_label() -> str:
    return datetime.datetime.now().strftime('%H:%M:%S')


def parse_custom_recipients(text: str) -> list[str]:
    """Comma, semicolon or newline separated addresses, de-duplicated case-insensitively."""
    seen, result = set(), []
    for part in re.split(r'[,;\n]+', text or ""):
        address = part.strip()
        if address and address.casefold() not in seen:
            seen.add(address.casefold())
            result.append(address)
    return result


class DashboardController:
    """Gradio callbacks for the internal dashboard."""

    def __init__(self, config: DashboardConfig, settings: SettingsStore, client: RemoteStoreClient = None):
        self.config = config
        self.settings = settings
        self.client = client or RemoteStoreClient(config)
        self.table = SubscriberTable()
        self.bulk = BulkDeleteOrchestrator(self.client, self.table, config.max_concurrent_requests)

    # --- Rendering ---

    def table_frame(self) -> pd.DataFrame:
        headers = list(TABLE_HEADERS)
        sort_state = self.table.sort_state
        if sort_state is not None:
            header = _HEADER_FOR_COLUMN[sort_state.column]
            arrow = "▲" if sort_state.direction == "asc" else "▼"
            headers[headers.index(header)] = f"{header} {arrow}"

        selected = set(self.table.selection.resolve(self.table.view))
        rows = [
            ["☑" if i in selected else "☐", r.first_name, r.email, format_date(r.timestamp), r.source]
            for i, r in enumerate(self.table.view)
        ]
        return pd.DataFrame(rows, columns=headers)

    def stats_text(self) -> str:
        stats = self.table.stats()
        text = f"**Total subscribers:** {stats['total']} &nbsp;|&nbsp; **Signed up today:** {stats['today']}"
        if self.table.is_placeholder:
            text += " &nbsp;|&nbsp; ⚠️ *sample data, store not connected*"
        return text

    def selection_text(self) -> str:
        count = self.table.selection.size()
        return f"**{count}** selected" if count else "No subscribers selected"

    def render(self):
        return self.table_frame(), self.stats_text(), self.selection_text()

    # --- Loading ---

    def check_store_status(self) -> str:
        return self.client.check_connection()

    def load_subscribers(self):
        """Loads from the store; falls back to labelled sample rows when it cannot be reached."""
        result = self.client.list_subscribers()
        if result.ok:
            self.table.set_all(result.value)
            msg = f"✅ Loaded {len(result.value)} subscribers at {_now_label()}."
        else:
            logger.error(f"Falling back to sample data: {result.message}")
            self.table.set_all(placeholder_subscribers(), placeholder=True)
            msg = f"🔴 Could not connect to the store, showing sample data. ({result.message})"
            gr.Warning(msg)
        return (*self.render(), msg)

    # --- Filtering, sorting, selection ---

    def filter_changed(self, search_term, window):
        self.table.apply_filter(search_term or "", window or "all")
        return self.render()

    def sort_clicked(self, column: str):
        if column not in SORT_COLUMNS:
            raise ValueError(f"Unknown sort column: {column}")
        self.table.sort_by(column)
        return self.render()

    def row_selected(self, evt: gr.SelectData):
        """Clicking any cell toggles that row."""
        position = evt.index[0] if isinstance(evt.index, (list, tuple)) else evt.index
        self.table.toggle_row(int(position))
        return self.render()

    def select_all_clicked(self):
        self.table.select_all_visible()
        return self.render()

    def clear_selection_clicked(self):
        self.table.clear_selection()
        return self.render()

    # --- Bulk delete ---

    def ask_confirm_bulk_delete(self):
        """Shows the confirmation row instead of the default action row."""
        try:
            prompt = self.bulk.request()
        except ValueError:
            gr.Warning("No subscribers selected")
            return gr.update(), gr.update(visible=True), gr.update(visible=False)
        except BulkDeleteBusy as e:
            gr.Warning(str(e))
            return gr.update(), gr.update(), gr.update()
        return gr.update(value=f"⚠️ {prompt}"), gr.update(visible=False), gr.update(visible=True)

    def cancel_bulk_delete(self):
        self.bulk.cancel()
        return gr.update(value=""), gr.update(visible=True), gr.update(visible=False)

    def execute_bulk_delete(self):
        """Runs the confirmed batch, then restores the default action row."""
        try:
            outcome = self.bulk.confirm()
        except BulkDeleteBusy as e:
            gr.Warning(str(e))
            return (*self.render(), gr.update(), gr.update(visible=True), gr.update(visible=False))

        details = outcome.failure_lines()
        text = outcome.summary + ("\n\n" + "\n".join(f"- {line}" for line in details) if details else "")
        if outcome.status is BulkDeleteState.SUCCESS:
            gr.Info(outcome.summary)
        else:
            gr.Warning(outcome.summary)
        return (*self.render(), gr.update(value=text), gr.update(visible=True), gr.update(visible=False))

    # --- Manual add ---

    def add_subscriber(self, first_name, email, source):
        """Validates, adds to the store, shows it at once, then reloads from the store."""
        first_name, email = (first_name or "").strip(), (email or "").strip()
        invalid = validate_signup(first_name, email)
        if invalid:
            return (*self.render(), f"❌ {invalid.message}")
        if self.table.contains_email(email):
            return (*self.render(), "❌ This email address is already subscribed.")

        result = self.client.add_subscriber(first_name, email, source or self.config.default_source)
        if not result.ok:
            if result.kind is ErrorKind.DUPLICATE_EMAIL:
                return (*self.render(), "❌ This email address is already subscribed.")
            if result.kind is ErrorKind.VALIDATION:
                return (*self.render(), f"❌ {result.message}")
            gr.Warning(f"Failed to add subscriber: {result.message}")
            return (*self.render(), "❌ Failed to add subscriber. Please try again.")

        self.table.prepend(Subscriber(first_name, email, datetime.datetime.now(datetime.timezone.utc),
                                      source or self.config.default_source))
        refreshed = self.client.list_subscribers()
        if refreshed.ok:
            self.table.set_all(refreshed.value)
        else:
            gr.Warning(f"{first_name} was added, but the list could not be reloaded: {refreshed.message}")
        gr.Info(f"{first_name} has been added to your subscriber list!")
        return (*self.render(), "✅ Subscriber added successfully!")

    # --- Export ---

    def export_clicked(self):
        if not self.table.view:
            gr.Warning("Nothing to export.")
            return None
        path = export_subscribers(list(self.table.view), self.config.export_format)
        gr.Info(f"Exported {len(self.table.view)} subscribers.")
        return path

    # --- Compose ---

    def template_changed(self, template_key):
        if template_key in EMAIL_TEMPLATES:
            return gr.update(value=EMAIL_TEMPLATES[template_key])
        return gr.update()

    def resolve_recipients(self, mode: str, custom_text: str, test_mode: bool) -> list[dict]:
        """Recipients as {'email', 'firstName'} dicts."""
        if test_mode:
            if not self.config.sender_email:
                return []
            return [{"email": self.config.sender_email, **SAMPLE_VALUES}]
        if mode == "all":
            records = self.table.records
        elif mode == "selected":
            records = self.table.selected_records()
        else:
            known = {r.email.casefold(): r for r in self.table.records}
            recipients = []
            for address in parse_custom_recipients(custom_text):
                match = known.get(address.casefold())
                recipients.append({"email": address, "firstName": match.first_name if match else FALLBACK_FIRST_NAME})
            return recipients
        return [{"email": r.email, "firstName": r.first_name} for r in records]

    def preview_email(self, mode, custom_text, subject, content, test_mode):
        recipients = self.resolve_recipients(mode, custom_text, test_mode)
        to_line = self.config.sender_email if test_mode else f"{len(recipients)} recipients"
        body = render_template(content, SAMPLE_VALUES)
        return (f"**From:** {self.config.sender_name} <{self.config.sender_email}>  \n"
                f"**To:** {to_line}  \n"
                f"**Subject:** {render_template(subject, SAMPLE_VALUES)}\n\n---\n\n"
                + body.replace("\n", "  \n"))

    def send_emails(self, mode, custom_text, subject, content, test_mode):
        if not subject or not content:
            gr.Warning("Please fill in a subject and a message.")
            return "❌ Subject and message are required."
        recipients = self.resolve_recipients(mode, custom_text, test_mode)
        invalid = [r["email"] for r in recipients if not is_valid_email(r["email"])]
        if invalid:
            return f"❌ Invalid recipient address(es): {', '.join(invalid)}"
        if not recipients:
            gr.Warning("No recipients.")
            return "❌ No recipients. Select subscribers, pick 'all', or set a sender email for test mode."

        def send_one(recipient):
            values = {"firstName": recipient["firstName"], "email": recipient["email"]}
            return recipient["email"], self.client.send_email(
                recipient["email"], render_template(subject, values), render_template(content, values),
                self.config.sender_name, self.config.reply_to,
            )

        workers = min(self.config.max_concurrent_requests, len(recipients))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(send_one, recipients))

        failed = [(address, r.message) for address, r in results if not r.ok]
        sent = len(results) - len(failed)
        summary = f"Sent {sent} of {len(results)} email(s)."
        if failed:
            gr.Warning(summary)
            return summary + "\n" + "\n".join(f"- {address}: {message}" for address, message in failed)
        gr.Info(summary)
        return f"✅ {summary}"

    def save_draft(self, subject, content):
        if not subject and not content:
            return "Nothing to save."
        self.settings.save_draft(subject or "", content or "")
        gr.Info("Draft saved successfully!")
        return f"✅ Draft saved at {_now_label()}. {len(self.settings.list_drafts())} draft(s) stored."

    # --- Settings ---

    def settings_values(self):
        c = self.config
        return c.endpoint_url, c.sender_name, c.sender_email, c.reply_to, c.export_format

    def save_settings(self, store_url, from_name, from_email, reply_to, export_format):
        if from_email and not is_valid_email(from_email.strip()):
            return "❌ Sender email is not a valid address."
        if export_format not in EXPORT_FORMATS:
            return f"❌ Export format must be one of: {', '.join(EXPORT_FORMATS)}."
        new_config = self.config.with_settings({
            "fd_store_url": (store_url or "").strip(),
            "fd_from_name": (from_name or "").strip(),
            "fd_from_email": (from_email or "").strip(),
            "fd_reply_to": (reply_to or "").strip(),
            "fd_export_format": export_format,
        })
        if self.bulk.state is not BulkDeleteState.IDLE:
            return "❌ A bulk delete is in progress; try again when it finishes."
        self.settings.save_settings(new_config.to_settings())
        self.config = new_config
        self.client = RemoteStoreClient(new_config)
        self.bulk.client = self.client
        gr.Info("Settings saved successfully!")
        return f"✅ Settings saved at {_now_label()}."

    def test_connection(self, store_url):
        url = (store_url or "").strip()
        if not url:
            return "❌ Please enter the store URL."
        probe = RemoteStoreClient(self.config.with_settings({"fd_store_url": url}))
        return probe.check_connection()


class SignupController:
    """Callback for the public landing-page form."""

    def __init__(self, config: DashboardConfig, client: RemoteStoreClient = None):
        self.config = config
        self.client = client or RemoteStoreClient(config)

    def submit(self, first_name, email):
        """Returns (message markdown, first name value, email value)."""
        first_name, email = (first_name or "").strip(), (email or "").strip()
        if not first_name:
            return f"❌ {SIGNUP_MESSAGES['first_name']}", first_name, email
        if not is_valid_email(email):
            return f"❌ {SIGNUP_MESSAGES['email']}", first_name, email

        result = self.client.add_subscriber(first_name, email, self.config.default_source,
                                            ip_address="Unknown", timeout=self.config.load_timeout)
        if result.ok:
            logger.info(f"Landing page signup: {email}")
            return f"✅ {SIGNUP_MESSAGES['success']}", "", ""
        if result.kind is ErrorKind.DUPLICATE_EMAIL:
            return f"ℹ️ {SIGNUP_MESSAGES['duplicate']}", first_name, email
        if result.kind is ErrorKind.VALIDATION:
            return f"❌ {SIGNUP_MESSAGES['email']}", first_name, email
        key = "timeout" if getattr(result, "timed_out", False) else "network"
        return f"❌ {SIGNUP_MESSAGES[key]}", first_name, email

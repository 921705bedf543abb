# frontend/funnel_dashboard/ui.py
# DESIGNER'S NOTE:
# Layout only. Each builder returns a dict of its components so main.py can
# wire events without reaching into Gradio internals.

import gradio as gr

from .config import EXPORT_FORMATS
from .handlers import TABLE_HEADERS
from .templating import template_choices

WINDOW_CHOICES = [("All time", "all"), ("Today", "today"), ("Last 7 days", "week"), ("Last month", "month")]
RECIPIENT_CHOICES = [("All subscribers", "all"), ("Selected subscribers", "selected"), ("Custom list", "custom")]


def create_subscribers_tab():
    """Builds the 'Subscribers' tab: stats, filters, the table, bulk actions and manual add."""
    with gr.TabItem("Subscribers", id="subscribers_tab") as tab:
        stats_output = gr.Markdown()
        status_output = gr.Markdown()

        with gr.Row():
            search_input = gr.Textbox(label="Search", placeholder="Name or email", scale=3)
            window_dd = gr.Dropdown(label="Signed up", choices=WINDOW_CHOICES, value="all", scale=1)
            refresh_btn = gr.Button("🔄 Refresh", variant="secondary", scale=0)

        with gr.Row():
            gr.Markdown("Sort by:")
            sort_buttons = {
                "firstName": gr.Button("Name", size="sm"),
                "email": gr.Button("Email", size="sm"),
                "timestamp": gr.Button("Signup Date", size="sm"),
                "source": gr.Button("Source", size="sm"),
            }

        gr.Markdown("Click a row to select or deselect it.")
        dataframe = gr.DataFrame(headers=TABLE_HEADERS, interactive=False, row_count=(10, "dynamic"), wrap=True)
        selection_output = gr.Markdown()

        with gr.Row(visible=True) as default_action_row:
            select_all_btn = gr.Button("Select all visible")
            clear_selection_btn = gr.Button("Clear selection")
            delete_btn = gr.Button("🗑️ Delete selected", variant="stop")
            export_btn = gr.Button("⬇️ Export")
        with gr.Row(visible=False) as confirm_action_row:
            confirm_yes_btn = gr.Button("Yes, delete", variant="stop")
            confirm_no_btn = gr.Button("Cancel")
        bulk_status = gr.Markdown()
        export_file = gr.File(label="Export", interactive=False)

        with gr.Accordion("➕ Add subscriber", open=False):
            first_name_input = gr.Textbox(label="First name", placeholder="Jane")
            email_input = gr.Textbox(label="Email", placeholder="jane@example.com")
            source_input = gr.Textbox(label="Source", value="Dashboard")
            add_btn = gr.Button("Add subscriber", variant="primary")
            add_status = gr.Markdown()

    return {
        "tab": tab, "stats_output": stats_output, "status_output": status_output,
        "search_input": search_input, "window_dd": window_dd, "refresh_btn": refresh_btn,
        "sort_buttons": sort_buttons, "dataframe": dataframe, "selection_output": selection_output,
        "default_action_row": default_action_row, "confirm_action_row": confirm_action_row,
        "select_all_btn": select_all_btn, "clear_selection_btn": clear_selection_btn,
        "delete_btn": delete_btn, "export_btn": export_btn,
        "confirm_yes_btn": confirm_yes_btn, "confirm_no_btn": confirm_no_btn,
        "bulk_status": bulk_status, "export_file": export_file,
        "first_name_input": first_name_input, "email_input": email_input, "source_input": source_input,
        "add_btn": add_btn, "add_status": add_status,
    }


def create_compose_tab():
    with gr.TabItem("Compose", id="compose_tab") as tab:
        gr.Markdown("Use `{{firstName}}` anywhere in the subject or message to personalise it.")
        with gr.Row():
            with gr.Column(scale=3):
                recipients_radio = gr.Radio(label="Recipients", choices=RECIPIENT_CHOICES, value="selected")
                custom_recipients = gr.Textbox(label="Custom recipients", lines=2,
                                               placeholder="a@example.com, b@example.com", visible=False)
                template_dd = gr.Dropdown(label="Template", choices=template_choices(), value="custom")
                subject_input = gr.Textbox(label="Subject")
                content_input = gr.Textbox(label="Message", lines=14)
                test_mode = gr.Checkbox(label="Test mode", info="Send a single copy to the sender email instead")
                with gr.Row():
                    preview_btn = gr.Button("👁️ Preview")
                    draft_btn = gr.Button("💾 Save draft")
                    send_btn = gr.Button("📨 Send", variant="primary")
                send_status = gr.Markdown()
            with gr.Column(scale=2):
                gr.Markdown("### Preview")
                preview_output = gr.Markdown()

    return {
        "tab": tab, "recipients_radio": recipients_radio, "custom_recipients": custom_recipients,
        "template_dd": template_dd, "subject_input": subject_input, "content_input": content_input,
        "test_mode": test_mode, "preview_btn": preview_btn, "draft_btn": draft_btn, "send_btn": send_btn,
        "send_status": send_status, "preview_output": preview_output,
    }


def create_settings_tab():
    with gr.TabItem("Settings", id="settings_tab") as tab:
        store_url_input = gr.Textbox(label="Store URL", info="Full URL of the store's /exec endpoint")
        with gr.Row():
            from_name_input = gr.Textbox(label="Sender name")
            from_email_input = gr.Textbox(label="Sender email", info="Used as the test-mode recipient")
            reply_to_input = gr.Textbox(label="Reply-to")
        export_format_radio = gr.Radio(label="Export format", choices=list(EXPORT_FORMATS), value="csv")
        with gr.Row():
            test_btn = gr.Button("🔌 Test connection")
            save_btn = gr.Button("Save settings", variant="primary")
        settings_status = gr.Markdown()

    return {
        "tab": tab, "store_url_input": store_url_input, "from_name_input": from_name_input,
        "from_email_input": from_email_input, "reply_to_input": reply_to_input,
        "export_format_radio": export_format_radio, "test_btn": test_btn, "save_btn": save_btn,
        "settings_status": settings_status,
    }


def create_signup_page():
    """The public landing page: a two-field signup form."""
    gr.Markdown("# Join the community\nGet practical guides and updates delivered to your inbox.")
    with gr.Column():
        first_name_input = gr.Textbox(label="First name", placeholder="Your first name")
        email_input = gr.Textbox(label="Email", placeholder="you@example.com")
        submit_btn = gr.Button("Subscribe", variant="primary")
        message_output = gr.Markdown()
    return {
        "first_name_input": first_name_input, "email_input": email_input,
        "submit_btn": submit_btn, "message_output": message_output,
    }

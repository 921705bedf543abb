# frontend/funnel_dashboard/main.py
# DESIGNER'S NOTE:
# This file assembles the UI and wires the event handlers. The config is
# built once here and passed to the controllers; --page picks between the
# internal dashboard and the public signup page.

import logging
import os
from functools import partial

import gradio as gr

from . import ui
from .config import build_config, parse_args
from .handlers import DashboardController, SignupController
from .logging_config import setup_logging
from .settings_store import SettingsStore

logger = logging.getLogger(__name__)


def build_dashboard(controller: DashboardController) -> gr.Blocks:
    """Builds the dashboard Blocks and wires every event to the controller."""
    with gr.Blocks(theme=gr.themes.Soft(primary_hue="green", secondary_hue="lime"), title="Signup Funnel Dashboard") as demo:
        store_status = gr.Markdown()
        gr.Markdown("# Signup Funnel Dashboard")

        with gr.Tabs():
            sub_ui = ui.create_subscribers_tab()
            compose_ui = ui.create_compose_tab()
            settings_ui = ui.create_settings_tab()

        # --- Subscribers ---
        table_outputs = [sub_ui["dataframe"], sub_ui["stats_output"], sub_ui["selection_output"]]
        load_outputs = table_outputs + [sub_ui["status_output"]]

        demo.load(controller.check_store_status, outputs=store_status)
        demo.load(controller.load_subscribers, outputs=load_outputs)
        sub_ui["refresh_btn"].click(controller.load_subscribers, outputs=load_outputs)

        filter_inputs = [sub_ui["search_input"], sub_ui["window_dd"]]
        sub_ui["search_input"].change(controller.filter_changed, inputs=filter_inputs, outputs=table_outputs)
        sub_ui["window_dd"].change(controller.filter_changed, inputs=filter_inputs, outputs=table_outputs)
        for column, button in sub_ui["sort_buttons"].items():
            button.click(partial(controller.sort_clicked, column), outputs=table_outputs)

        sub_ui["dataframe"].select(controller.row_selected, outputs=table_outputs)
        sub_ui["select_all_btn"].click(controller.select_all_clicked, outputs=table_outputs)
        sub_ui["clear_selection_btn"].click(controller.clear_selection_clicked, outputs=table_outputs)

        confirm_outputs = [sub_ui["bulk_status"], sub_ui["default_action_row"], sub_ui["confirm_action_row"]]
        sub_ui["delete_btn"].click(controller.ask_confirm_bulk_delete, outputs=confirm_outputs)
        sub_ui["confirm_no_btn"].click(controller.cancel_bulk_delete, outputs=confirm_outputs)
        sub_ui["confirm_yes_btn"].click(controller.execute_bulk_delete, outputs=table_outputs + confirm_outputs)

        sub_ui["export_btn"].click(controller.export_clicked, outputs=sub_ui["export_file"])
        sub_ui["add_btn"].click(
            controller.add_subscriber,
            inputs=[sub_ui["first_name_input"], sub_ui["email_input"], sub_ui["source_input"]],
            outputs=table_outputs + [sub_ui["add_status"]],
        )

        # --- Compose ---
        compose_ui["recipients_radio"].change(
            lambda mode: gr.update(visible=mode == "custom"),
            inputs=compose_ui["recipients_radio"], outputs=compose_ui["custom_recipients"],
        )
        compose_ui["template_dd"].change(controller.template_changed, inputs=compose_ui["template_dd"],
                                         outputs=compose_ui["content_input"])
        compose_inputs = [compose_ui["recipients_radio"], compose_ui["custom_recipients"],
                          compose_ui["subject_input"], compose_ui["content_input"], compose_ui["test_mode"]]
        compose_ui["preview_btn"].click(controller.preview_email, inputs=compose_inputs,
                                        outputs=compose_ui["preview_output"])
        compose_ui["send_btn"].click(controller.send_emails, inputs=compose_inputs, outputs=compose_ui["send_status"])
        compose_ui["draft_btn"].click(controller.save_draft,
                                      inputs=[compose_ui["subject_input"], compose_ui["content_input"]],
                                      outputs=compose_ui["send_status"])

        # --- Settings ---
        settings_fields = [settings_ui["store_url_input"], settings_ui["from_name_input"],
                           settings_ui["from_email_input"], settings_ui["reply_to_input"],
                           settings_ui["export_format_radio"]]
        demo.load(controller.settings_values, outputs=settings_fields)
        settings_ui["test_btn"].click(controller.test_connection, inputs=settings_ui["store_url_input"],
                                      outputs=settings_ui["settings_status"])
        settings_ui["save_btn"].click(
            controller.save_settings, inputs=settings_fields, outputs=settings_ui["settings_status"]
        ).then(controller.check_store_status, outputs=store_status)

    return demo


def build_signup_page(controller: SignupController) -> gr.Blocks:
    with gr.Blocks(theme=gr.themes.Soft(primary_hue="green", secondary_hue="lime"), title="Join the community") as demo:
        page = ui.create_signup_page()
        page["submit_btn"].click(
            controller.submit,
            inputs=[page["first_name_input"], page["email_input"]],
            outputs=[page["message_output"], page["first_name_input"], page["email_input"]],
        )
    return demo


def main(argv=None):
    """Builds the selected page from the command line and settings, then launches it."""
    os.environ["GRADIO_ANALYTICS_ENABLED"] = "false"
    setup_logging()

    args = parse_args(argv)
    settings = SettingsStore(args.settings)
    config = build_config(args, settings)
    logger.info(f"Store endpoint: {config.endpoint_url}")

    if config.page == "signup":
        demo = build_signup_page(SignupController(config))
    else:
        demo = build_dashboard(DashboardController(config, settings))

    logger.info(f"Starting the {config.page} page on port {config.run_port}")
    demo.launch(server_name="0.0.0.0", server_port=config.run_port, inbrowser=False)

# frontend/funnel_dashboard/logging_config.py

import logging
import logging.config
import os


def setup_logging(level: str = "INFO"):
    """Console plus a rotating file under frontend/logs/, same layout as the store's."""
    log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'logs')
    os.makedirs(log_dir, exist_ok=True)
    log_file_path = os.path.join(log_dir, 'funnel_dashboard.log')

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'default',
                'level': level,
                'stream': 'ext://sys.stdout',
            },
            'rotating_file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'formatter': 'default',
                'level': level,
                'filename': log_file_path,
                'maxBytes': 1024 * 1024 * 5,  # 5 MB
                'backupCount': 5,
                'encoding': 'utf-8',
            },
        },
        'loggers': {
            '': {'handlers': ['console', 'rotating_file'], 'level': level},
            # Gradio and its HTTP stack are chatty at INFO.
            'httpx': {'level': 'WARNING'},
            'gradio': {'level': 'WARNING'},
        },
    })
    logging.getLogger(__name__).info(f"Dashboard logging to {log_file_path}")
    return log_file_path

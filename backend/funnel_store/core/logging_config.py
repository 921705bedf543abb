# backend/funnel_store/core/logging_config.py

import logging
import logging.config
import os


def setup_logging(level: str = "INFO"):
    """
    Configures logging for the row store service.

    Records go to the console and to a size-rotated file under backend/logs/.
    The uvicorn loggers are routed through the same handlers so access and
    error lines land in one place.
    """
    log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', '..', 'logs')
    os.makedirs(log_dir, exist_ok=True)
    log_file_path = os.path.join(log_dir, 'funnel_store.log')

    LOGGING_CONFIG = {
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
            '': {
                'handlers': ['console', 'rotating_file'],
                'level': level,
            },
            'uvicorn.error': {
                'handlers': ['console', 'rotating_file'],
                'level': 'INFO',
                'propagate': False,
            },
            'uvicorn.access': {
                'handlers': ['console', 'rotating_file'],
                'level': 'WARNING',
                'propagate': False,
            },
        }
    }

    logging.config.dictConfig(LOGGING_CONFIG)
    root_logger = logging.getLogger()
    root_logger.info("Logging system initialized successfully.")
    root_logger.info(f"Log files will be saved to: {log_file_path}")
    return log_file_path

import logging
import os
import sys
from datetime import datetime

from legal_case_management.config import get_settings
from legal_case_management.observability.middleware import (
    JsonRequestLogFormatter,
    RequestContextFilter,
)

PACKAGE_LOGGERS = [
    "legal_case_management",
    "legal_case_management.api",
    "legal_case_management.services",
    "legal_case_management.storage",
    "legal_case_management.access",
]


def setup_logging(log_dir: str = "logs"):
    """Configure logging for the application with JSON console logs.

    File logs keep a human-readable format for local debugging; console logs use JSON.
    Request-scoped fields (request_id, method, path, status, duration_ms) are injected
    by the RequestContextFilter and the access middleware.
    """
    settings = get_settings()
    os.makedirs(log_dir, exist_ok=True)

    log_filename = os.path.join(
        log_dir, f"legal_cms_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    )

    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
    )

    file_handler = logging.FileHandler(log_filename)
    file_handler.setFormatter(file_formatter)
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(RequestContextFilter())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonRequestLogFormatter())
    console_handler.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers to avoid duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    if not any(isinstance(f, RequestContextFilter) for f in root_logger.filters):
        root_logger.addFilter(RequestContextFilter())

    for logger_name in PACKAGE_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.addHandler(file_handler)
        logger.addHandler(console_handler)

    return root_logger

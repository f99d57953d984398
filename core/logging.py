"""
Logging configuration
"""

import json
import logging
import sys
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class ErrorContextFormatter(logging.Formatter):
    """Appends the `error_context` extra (work item id, task type, ...) when a record carries one"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "error_context", None)
        if context:
            message += f" | context={json.dumps(context, default=str, sort_keys=True)}"
        return message


def setup_logging():
    """Configure logging for bots, scripts and the API"""

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ErrorContextFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=log_level, handlers=[handler])

    # Third-party loggers are chatty at INFO
    for noisy in ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {settings.LOG_LEVEL} level")

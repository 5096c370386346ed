import logging
import logging.config
import os
import sys
import uuid
from typing import Optional

import structlog

from shopplan.datetime_utils import utcnow

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _handler_config(log_level: str, log_file: Optional[str]) -> dict:
    """Console handler, plus a rotating file handler when log_file is set."""
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "rendered",
            "stream": sys.stdout,
        }
    }

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "rendered",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
        }
    return handlers


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure structured logging for the application.

    structlog renders each event to a JSON line; the stdlib handlers only
    write that line out, to stdout and optionally to a rotating file.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path. If None, logs to stdout only.
    """
    log_level = (log_level or "INFO").upper()
    handlers = _handler_config(log_level, log_file)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "rendered": {"format": "%(message)s"},
        },
        "handlers": handlers,
        "root": {
            "level": log_level,
            "handlers": list(handlers),
        },
    })

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("shopplan")
    logger.info("Logging configured", level=log_level, file=log_file)

    return logger


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class PlanningContext:
    """Context manager for planning operations with correlation ID."""

    def __init__(self, operation_type: str, item_id: Optional[int] = None, operation_id: Optional[str] = None):
        self.operation_type = operation_type
        self.item_id = item_id
        self.operation_id = operation_id or str(uuid.uuid4())[:8]
        self.logger = get_logger("shopplan.planning")
        self.start_time = None

    def __enter__(self):
        self.start_time = utcnow()
        self.logger.info(
            "Planning operation started",
            operation_type=self.operation_type,
            operation_id=self.operation_id,
            item_id=self.item_id,
            start_time=self.start_time.isoformat()
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (utcnow() - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.info(
                "Planning operation completed",
                operation_type=self.operation_type,
                operation_id=self.operation_id,
                item_id=self.item_id,
                duration_seconds=duration,
                status="success"
            )
        else:
            self.logger.error(
                "Planning operation failed",
                operation_type=self.operation_type,
                operation_id=self.operation_id,
                item_id=self.item_id,
                duration_seconds=duration,
                status="error",
                error_type=exc_type.__name__,
                error_message=str(exc_val)
            )

        return False  # Don't suppress exceptions

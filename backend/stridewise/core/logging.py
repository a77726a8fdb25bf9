"""Centralized logging configuration for the API and the scheduler worker."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from stridewise.core.context import get_request_id

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("apscheduler", "httpx", "opik")


class RequestIdFilter(logging.Filter):
    """Stamp records with the active request or job id."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO", quiet_level: str = "WARNING") -> None:
    """Configure logging once per process."""
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "filters": {
                "request_id": {"()": "stridewise.core.logging.RequestIdFilter"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level,
                    "filters": ["request_id"],
                }
            },
            "loggers": {name: {"level": quiet_level} for name in QUIET_LOGGERS},
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s (third-party at %s)", log_level, quiet_level)
    setattr(configure_logging, "_configured", True)

"""Logging configuration"""

import logging
import sys
from logging.config import dictConfig
from typing import Any

from dockerflow import logging as dockerflow_logging

from geticon.configs import settings

# Loggers owned by the service: the package itself and the two access logs
# written by `LoggingMiddleware`.
SERVICE_LOGGERS: tuple[str, ...] = ("geticon", "web.icon.request", "request.summary")

HANDLERS: dict[str, str] = {
    "mozlog": "console-mozlog",
    "pretty": "console-pretty",
}


def configure_logging() -> None:
    """Install the handlers for the configured log format.

    Raises:
        ValueError: if the format is unknown, or is not `mozlog` in production.
    """
    log_format = settings.logging.format
    if log_format not in HANDLERS:
        raise ValueError(
            f"Invalid log format: {log_format}. Should either be 'mozlog' or 'pretty'."
        )
    if settings.current_env.lower() == "production" and log_format != "mozlog":
        raise ValueError("Log format must be 'mozlog' in production")

    dictConfig(build_logging_config(HANDLERS[log_format], settings.logging.level))


def build_logging_config(handler: str, level: str) -> dict[str, Any]:
    """Return the `dictConfig` schema routing every service logger to `handler`."""
    service_logger = {
        "handlers": [handler],
        "level": level,
        "propagate": settings.logging.can_propagate,
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {"format": "%(message)s"},
            "json": {"()": GCPCompatibleJSONFormatter, "logger_name": "geticon"},
        },
        "handlers": {
            "console-mozlog": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "json",
                "stream": sys.stdout,
            },
            "console-pretty": {
                "class": "rich.logging.RichHandler",
                "level": level,
                "formatter": "text",
            },
            "uvicorn-error": {
                "class": "logging.StreamHandler",
                "level": "ERROR",
                "formatter": "text",
                "stream": sys.stderr,
            },
        },
        "loggers": {
            **{name: dict(service_logger) for name in SERVICE_LOGGERS},
            "uvicorn.error": {
                "handlers": ["uvicorn-error"],
                "level": "ERROR",
                "propagate": False,
            },
        },
    }


class GCPCompatibleJSONFormatter(dockerflow_logging.JsonLogFormatter):
    """MozLog JSON records that also carry the numeric `severity` GCP reads."""

    SEVERITIES: dict[int, int] = {
        logging.CRITICAL: 600,
        logging.ERROR: 500,
        logging.WARNING: 400,
        logging.INFO: 200,
        logging.DEBUG: 100,
    }

    def convert_record(self, record):
        """Add `severity` to the MozLog record."""
        out = super().convert_record(record)
        out["severity"] = self.SEVERITIES.get(record.levelno, 0)
        return out

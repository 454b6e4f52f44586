"""Sentry Configuration"""

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.types import Event, Hint

from geticon import __version__
from geticon.configs import settings

logger = logging.getLogger(__name__)

REDACTED_TEXT = "[REDACTED]"

# Request headers copied onto outbound fetches. They describe the end user, so
# they never leave the process in an error report.
REDACTED_HEADERS = frozenset({"cookie", "authorization", "accept-language", "user-agent"})


def configure_sentry() -> None:  # pragma: no cover
    """Configure and initialize Sentry integration."""
    if settings.sentry.mode == "disabled":
        return
    sentry_sdk.init(
        dsn=settings.sentry.dsn,
        integrations=[
            StarletteIntegration(),
            FastApiIntegration(),
            # Soft misses and rejected candidates are logged below ERROR and must
            # never turn into Sentry events.
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        release=__version__,
        debug="debug" == settings.sentry.mode,
        before_send=strip_sensitive_data,
        environment=settings.sentry.env,
        traces_sample_rate=settings.sentry.traces_sample_rate,
    )


def strip_sensitive_data(event: Event, hint: Hint) -> Event | None:
    """Filter out sensitive data from Sentry events."""
    #  See: https://docs.sentry.io/platforms/python/configuration/filtering/
    request = event.get("request", {})
    headers = request.get("headers", {})
    for name in list(headers):
        if name.lower() in REDACTED_HEADERS:
            headers[name] = REDACTED_TEXT

    event_exception_values = event.get("exception", {}).get("values", [])
    if len(event_exception_values):
        for entry in event_exception_values[0].get("stacktrace", {}).get("frames", []):
            vars = entry.get("vars", {})

            match vars:
                case {"forwarded_headers": _}:
                    vars["forwarded_headers"] = REDACTED_TEXT

    return event

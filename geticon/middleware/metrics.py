"""The middleware that reports request timing and status code metrics."""

import logging
from functools import lru_cache
from http import HTTPStatus
from time import monotonic

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from geticon.metrics import get_metrics_client
from geticon.middleware import ScopeKey

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def metric_name(method: str, path: str) -> str:
    """Turn a request line into a metric prefix, e.g. `get.api.v1.img`."""
    return f"{method}.{path.strip('/').replace('/', '.')}".lower()


class MetricsMiddleware:
    """An ASGI middleware that times requests and counts their status codes.

    Not-found responses are only counted in the path independent
    `response.status_codes` metric so that probes of arbitrary paths do not
    create new metric names.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Report metrics for HTTP requests and pass everything else through."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        metrics_client = get_metrics_client()
        # Endpoints time their own work with the same client.
        scope[ScopeKey.METRICS_CLIENT] = metrics_client

        status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
        started_at = monotonic()

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = (monotonic() - started_at) * 1000
            if status_code != HTTPStatus.NOT_FOUND:
                prefix = metric_name(scope["method"], scope["path"])
                metrics_client.timing(f"{prefix}.timing", value=duration)
                metrics_client.increment(f"{prefix}.status_codes.{status_code}")
            metrics_client.increment(f"response.status_codes.{status_code}")

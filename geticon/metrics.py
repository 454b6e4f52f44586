"""StatsD metrics client shared by the web layer and the icon engine."""

import logging
from functools import cache

import aiodogstatsd

from geticon import __version__
from geticon.configs import settings

logger = logging.getLogger(__name__)


@cache
def get_metrics_client() -> aiodogstatsd.Client:
    """Return the process wide StatsD client, creating it on first use.

    `configure_metrics` connects it at application startup.
    """
    return aiodogstatsd.Client(
        host=settings.metrics.host,
        port=settings.metrics.port,
        namespace="geticon",
        constant_tags={
            "application": "geticon",
            "version": __version__,
            "deployment.canary": int(settings.deployment.canary),
        },
    )


async def configure_metrics() -> None:
    """Connect the metrics client. Called once at application startup."""
    client = get_metrics_client()
    if settings.metrics.dev_logger:
        client._protocol = _DatagramLogger()
    await client.connect()


async def shutdown_metrics() -> None:
    """Flush and close the metrics client. Called once at application shutdown."""
    await get_metrics_client().close()


class _DatagramLogger(aiodogstatsd.client.DatagramProtocol):
    """Write metric datagrams to the debug log instead of a UDP socket."""

    def send(self, data: bytes) -> None:
        logger.debug("sending metrics", extra={"data": data.decode("utf8")})

    def error_received(self, exc) -> None:
        logger.exception(exc)

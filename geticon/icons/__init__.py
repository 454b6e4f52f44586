"""Initialize the icon engine"""

import logging
from timeit import default_timer as timer

from geticon.configs import settings
from geticon.icons.cache import ResolutionCache
from geticon.icons.discovery import CandidateDiscovery
from geticon.icons.engine import IconEngine
from geticon.icons.fetcher import IconFetcher
from geticon.icons.resolver import IconResolver
from geticon.icons.scorer import IconScorer
from geticon.icons.validator import ContentValidator
from geticon.metrics import get_metrics_client
from geticon.utils.http_client import create_http_client

logger = logging.getLogger(__name__)

engine: IconEngine | None = None


def build_engine() -> IconEngine:
    """Assemble an engine from settings."""
    metrics_client = get_metrics_client()
    fetcher = IconFetcher(
        http_client=create_http_client(
            max_connections=settings.fetch.max_connections,
            connect_timeout=settings.fetch.connect_timeout_sec,
            request_timeout=settings.fetch.request_timeout_sec,
            pool_timeout=settings.fetch.pool_timeout_sec,
            max_redirects=settings.fetch.max_redirects,
            verify=settings.fetch.verify_tls,
        ),
        max_body_bytes=settings.fetch.max_body_bytes,
    )
    resolver = IconResolver(
        discovery=CandidateDiscovery(fetcher),
        fetcher=fetcher,
        validator=ContentValidator(),
        scorer=IconScorer(),
        batch_size=settings.resolver.batch_size,
        metrics_client=metrics_client,
    )
    cache = ResolutionCache(
        ttl_sec=settings.cache.ttl_sec,
        max_entries=settings.cache.max_entries,
        metrics_client=metrics_client,
    )
    return IconEngine(resolver=resolver, cache=cache)


def init_engine() -> None:
    """Initialize the icon engine.

    This should only be called once at the startup of application.
    """
    global engine
    start = timer()

    engine = build_engine()

    logger.info(
        "Icon engine initialization completed",
        extra={
            "verify_tls": settings.fetch.verify_tls,
            "batch_size": settings.resolver.batch_size,
            "elapsed": timer() - start,
        },
    )


async def shutdown_engine() -> None:
    """Shut down the icon engine.

    This should only be called once at the shutdown of application.
    """
    global engine
    if engine is not None:
        await engine.shutdown()
        engine = None


def get_engine() -> IconEngine:
    """Return the icon engine"""
    if engine is None:
        raise ValueError("Icon engine has not been initialized.")
    return engine

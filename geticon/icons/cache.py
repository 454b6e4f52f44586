"""In-memory TTL cache of resolutions with single-flight lookups"""

import asyncio
import logging
import time
from functools import partial
from typing import Any, Awaitable, Callable, NamedTuple, Optional

import aiodogstatsd

from geticon.icons.models import CacheKey, ResolutionResult

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CacheEntry(NamedTuple):
    """A stored resolution and the clock reading it was stored at."""

    result: ResolutionResult
    created_at: float


class ResolutionCache:
    """Memoize successful resolutions for a fixed TTL.

    Expired entries are evicted lazily on lookup. Concurrent lookups of the
    same missing key share a single in-flight resolution; different keys never
    wait on each other. Only results that found an icon are stored.
    """

    ttl_sec: float
    max_entries: int
    clock: Clock
    metrics_client: aiodogstatsd.Client
    _entries: dict[CacheKey, CacheEntry]
    _in_flight: dict[CacheKey, asyncio.Task[ResolutionResult]]

    def __init__(
        self,
        ttl_sec: float,
        max_entries: int,
        metrics_client: aiodogstatsd.Client,
        clock: Clock = time.monotonic,
    ) -> None:
        self.ttl_sec = ttl_sec
        self.max_entries = max_entries
        self.clock = clock
        self.metrics_client = metrics_client
        self._entries = {}
        self._in_flight = {}

    def get(self, key: CacheKey) -> Optional[ResolutionResult]:
        """Return the live entry for `key`, evicting it if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.created_at >= self.ttl_sec:
            del self._entries[key]
            logger.debug(f"Evicted expired cache entry for {key.url}", extra={"size": key.size})
            return None
        return entry.result

    def put(self, key: CacheKey, result: ResolutionResult) -> None:
        """Store a found result, evicting the oldest entry when full."""
        if not result.found:
            return
        self._entries.pop(key, None)
        while self._entries and len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
        self._entries[key] = CacheEntry(result=result, created_at=self.clock())

    async def get_or_resolve(
        self, key: CacheKey, resolve: Callable[[], Awaitable[ResolutionResult]]
    ) -> ResolutionResult:
        """Return the cached result for `key`, or run `resolve` once for all waiting callers.

        The resolution runs in a task owned by the cache, so it completes even
        when the caller that started it is cancelled. Exceptions raised by
        `resolve` propagate to every caller sharing the lookup and nothing is
        stored.
        """
        result = self.get(key)
        if result is not None:
            self.metrics_client.increment("icons.cache.hit")
            return result

        pending = self._in_flight.get(key)
        if pending is not None:
            self.metrics_client.increment("icons.cache.coalesced")
            return await asyncio.shield(pending)

        self.metrics_client.increment("icons.cache.miss")
        task = asyncio.create_task(self._resolve_and_store(key, resolve))
        self._in_flight[key] = task
        task.add_done_callback(partial(self._finish, key))
        return await asyncio.shield(task)

    async def _resolve_and_store(
        self, key: CacheKey, resolve: Callable[[], Awaitable[ResolutionResult]]
    ) -> ResolutionResult:
        result = await resolve()
        self.put(key, result)
        return result

    def _finish(self, key: CacheKey, task: asyncio.Task[ResolutionResult]) -> None:
        """Forget a settled resolution."""
        self._in_flight.pop(key, None)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(
                f"Resolution of {key.url} failed: {task.exception()!r}",
                extra={"size": key.size},
            )

    def clear(self) -> None:
        """Drop every stored entry."""
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Describe the cache for health reporting."""
        return {
            "entries": len(self._entries),
            "in_flight": len(self._in_flight),
            "max_entries": self.max_entries,
            "ttl_sec": self.ttl_sec,
        }

"""Entry point tying normalization, caching and resolution together"""

import logging
from typing import Mapping, Optional

from geticon.icons.cache import ResolutionCache
from geticon.icons.models import ResolutionResult
from geticon.icons.resolver import IconResolver
from geticon.icons.url import normalize_site

logger = logging.getLogger(__name__)


class IconEngine:
    """Resolve icons for user supplied sites, memoizing successful results."""

    resolver: IconResolver
    cache: ResolutionCache

    def __init__(self, resolver: IconResolver, cache: ResolutionCache) -> None:
        self.resolver = resolver
        self.cache = cache

    async def resolve(
        self,
        site: str,
        size: Optional[int] = None,
        forwarded_headers: Optional[Mapping[str, str]] = None,
    ) -> ResolutionResult:
        """Resolve the best icon for `site` at `size`.

        Concurrent requests for the same site and size share one resolution,
        so the headers of the request that started it are the ones forwarded.

        Raises:
            InvalidURL: if `site` cannot be normalized.
            InternalInconsistency: if resolution reaches an impossible state.
        """
        reference = normalize_site(site)
        key = reference.cache_key(size)
        return await self.cache.get_or_resolve(
            key, lambda: self.resolver.resolve(reference, size, forwarded_headers)
        )

    async def shutdown(self) -> None:
        """Release the outbound connection pool."""
        await self.resolver.fetcher.http_client.aclose()

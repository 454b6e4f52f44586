"""A utility module for GetIcon API cache control."""

from typing import Optional

from geticon.configs import settings

# Responses may be cached downstream for as long as the engine caches resolutions.
CACHE_CONTROL_TTL: int = settings.cache.ttl_sec


def cache_control_header(ttl: int = CACHE_CONTROL_TTL) -> str:
    """Return the Cache-Control value for successful icon responses."""
    return f"public, max-age={ttl}"


def quote_etag(digest: str) -> str:
    """Wrap a digest in quotes to form a strong entity tag."""
    return f'"{digest}"'


def etag_matches(if_none_match: Optional[str], etag: Optional[str]) -> bool:
    """Check whether an `If-None-Match` header value matches `etag`.

    Handles lists of tags, weak tags and the `*` wildcard.
    """
    if not if_none_match or not etag:
        return False

    for tag in if_none_match.split(","):
        tag = tag.strip()
        if tag == "*" or tag.removeprefix("W/") == etag:
            return True
    return False

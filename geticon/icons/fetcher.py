"""Fetch client for pages, manifests and icon payloads"""

import logging
from typing import Mapping, Optional

import httpx
from pydantic import BaseModel, Field

from geticon.exceptions import FetchHTTPError, FetchNetworkError, FetchTimeout
from geticon.icons.constants import (
    DESKTOP_CHROME,
    FORWARDED_HEADERS,
    USER_AGENT_PROFILES,
    UserAgentProfile,
)
from geticon.icons.models import IconKind

logger = logging.getLogger(__name__)

_FORWARDED_LOOKUP: dict[str, str] = {name.lower(): name for name in FORWARDED_HEADERS}


class FetchedResource(BaseModel):
    """A successfully retrieved remote resource."""

    requested_url: str
    url: str = Field(description="Final URL after redirects")
    status: int
    content_type: Optional[str] = None
    content: bytes = Field(repr=False)

    def text(self) -> str:
        """Decode the body as text, replacing undecodable bytes."""
        charset = "utf-8"
        if self.content_type and "charset=" in self.content_type.lower():
            charset = self.content_type.lower().split("charset=")[-1].split(";")[0].strip()
        try:
            return self.content.decode(charset, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")


def select_user_agent(kind: Optional[IconKind]) -> UserAgentProfile:
    """Return the client identity used to request a resource of the given kind.

    Documents fetched for discovery (`kind=None`) use the desktop profile.
    """
    if kind is None:
        return DESKTOP_CHROME
    return USER_AGENT_PROFILES[kind]


def filter_forwarded_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Keep only the incoming request headers that are copied onto outbound fetches."""
    forwarded: dict[str, str] = {}
    for name, value in headers.items():
        canonical = _FORWARDED_LOOKUP.get(name.lower())
        if canonical and value:
            forwarded[canonical] = value
    return forwarded


def build_request_headers(
    kind: Optional[IconKind], forwarded_headers: Optional[Mapping[str, str]] = None
) -> dict[str, str]:
    """Build outbound headers: forwarded client headers plus the profile identity."""
    profile = select_user_agent(kind)
    headers = filter_forwarded_headers(forwarded_headers or {})
    headers["User-Agent"] = profile.user_agent
    headers["Accept"] = profile.accept
    return headers


class IconFetcher:
    """Retrieve remote resources with a shared async HTTP client."""

    http_client: httpx.AsyncClient
    max_body_bytes: int

    def __init__(self, http_client: httpx.AsyncClient, max_body_bytes: int) -> None:
        self.http_client = http_client
        self.max_body_bytes = max_body_bytes

    async def fetch(
        self,
        url: str,
        kind: Optional[IconKind] = None,
        forwarded_headers: Optional[Mapping[str, str]] = None,
    ) -> FetchedResource:
        """Fetch `url`, following redirects, and return the final response body.

        Raises:
            FetchTimeout: if the host did not answer in time.
            FetchHTTPError: if the final response has a non-success status.
            FetchNetworkError: for connection, TLS, redirect-limit or oversize failures.
        """
        headers = build_request_headers(kind, forwarded_headers)
        try:
            async with self.http_client.stream("GET", url, headers=headers) as response:
                if not response.is_success:
                    raise FetchHTTPError(url, response.status_code)
                content = await self._read_body(url, response)
                return FetchedResource(
                    requested_url=url,
                    url=str(response.url),
                    status=response.status_code,
                    content_type=response.headers.get("Content-Type"),
                    content=content,
                )
        except httpx.TimeoutException as exc:
            raise FetchTimeout(url) from exc
        except httpx.TooManyRedirects as exc:
            raise FetchNetworkError(url, "too many redirects") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchNetworkError(url, f"{type(exc).__name__}: {exc}") from exc

    async def _read_body(self, url: str, response: httpx.Response) -> bytes:
        """Read the response body, refusing anything larger than `max_body_bytes`."""
        declared_length = response.headers.get("Content-Length", "")
        if declared_length.isdigit() and int(declared_length) > self.max_body_bytes:
            raise FetchNetworkError(url, f"body of {declared_length} bytes is too large")

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > self.max_body_bytes:
                raise FetchNetworkError(url, f"body exceeds {self.max_body_bytes} bytes")
        return bytes(body)

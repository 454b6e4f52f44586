"""URL normalization and reference resolution"""

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from geticon.exceptions import InvalidURL
from geticon.icons.constants import MANIFEST_JSON_BASE64_MARKER, UNSUPPORTED_SCHEMES
from geticon.icons.models import SiteReference

SUPPORTED_SCHEMES: frozenset[str] = frozenset({"http", "https"})
DEFAULT_SCHEME: str = "https"
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

_HOST_LABEL = re.compile(r"^(?!-)[a-z0-9_-]{1,63}(?<!-)$")


def normalize_site(value: str) -> SiteReference:
    """Canonicalize a bare host, host:port or full URL into a `SiteReference`.

    The scheme defaults to https, the host is lower-cased, fragments and
    trailing slashes are dropped, and a query string is kept only when the
    input was a full URL with an explicit scheme.

    Raises:
        InvalidURL: if no valid host can be parsed out of `value`.
    """
    candidate = value.strip() if value else ""
    if not candidate:
        raise InvalidURL(value, "empty input")

    explicit_scheme = "://" in candidate
    if candidate.startswith("//"):
        candidate = f"{DEFAULT_SCHEME}:{candidate}"
    elif not explicit_scheme:
        candidate = f"{DEFAULT_SCHEME}://{candidate}"

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise InvalidURL(value, str(exc)) from exc

    scheme = parts.scheme.lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise InvalidURL(value, f"unsupported scheme {scheme!r}")

    host = _normalize_host(value, parts.hostname)
    netloc = host if port is None or port == DEFAULT_PORTS[scheme] else f"{host}:{port}"

    path = parts.path.rstrip("/")
    query = parts.query if explicit_scheme else ""
    url = urlunsplit((scheme, netloc, path, query, ""))

    return SiteReference(url=url, scheme=scheme, host=netloc)


def _normalize_host(value: str, hostname: Optional[str]) -> str:
    """Validate and lower-case a hostname, converting internationalized names to ASCII."""
    if not hostname:
        raise InvalidURL(value, "missing host")

    if ":" in hostname:
        # IPv6 literal, already validated by urlsplit.
        return f"[{hostname}]"

    host = hostname.rstrip(".")
    try:
        host = host.encode("idna").decode("ascii").lower()
    except UnicodeError as exc:
        raise InvalidURL(value, "invalid host") from exc

    if not host or len(host) > 253:
        raise InvalidURL(value, "invalid host")
    if not all(_HOST_LABEL.match(label) for label in host.split(".")):
        raise InvalidURL(value, f"invalid host {host!r}")
    return host


def root_url(url: str) -> str:
    """Extract the origin (e.g., "https://example.com" from "https://example.com/path")."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def is_unsupported_reference(reference: str) -> bool:
    """Check if a reference is a data URL, base64 manifest, or otherwise unfetchable scheme."""
    lowered = reference.lower()
    return lowered.startswith(UNSUPPORTED_SCHEMES) or MANIFEST_JSON_BASE64_MARKER in lowered


def resolve_reference(base_url: str, reference: Optional[str]) -> Optional[str]:
    """Resolve an icon reference found in a document against the document's URL.

    Protocol-relative references are upgraded to https and fragments are
    dropped. Returns `None` for references that cannot be fetched.
    """
    if not reference:
        return None

    reference = reference.strip()
    if not reference or is_unsupported_reference(reference):
        return None

    if reference.startswith("//"):
        reference = f"{DEFAULT_SCHEME}:{reference}"

    try:
        parts = urlsplit(urljoin(base_url, reference))
    except ValueError:
        return None

    if parts.scheme.lower() not in SUPPORTED_SCHEMES or not parts.netloc:
        return None

    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, "")
    )

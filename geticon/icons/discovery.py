"""Discovery of icon candidates from the places a site may declare them"""

import asyncio
import json
import logging
from enum import Enum, unique
from typing import Any, Iterable, Mapping, NamedTuple, Optional
from xml.etree import ElementTree

from bs4 import BeautifulSoup, Tag

from geticon.exceptions import FetchError
from geticon.icons.constants import (
    APPLE_TOUCH_ICON_SIZE,
    DEFAULT_MANIFEST_PATHS,
    IMPLICIT_APPLE_TOUCH_PATHS,
    KIND_PRIORITY,
    LINK_REL_KINDS,
    MANIFEST_SELECTOR,
    MS_CONFIG_META_NAME,
    MS_TILE_META_NAMES,
    MS_TILE_SIZES,
    OPEN_GRAPH_PROPERTIES,
    PARSER,
)
from geticon.icons.fetcher import FetchedResource, IconFetcher
from geticon.icons.models import IconCandidate, IconFormat, IconKind, SiteReference
from geticon.icons.url import resolve_reference, root_url

logger = logging.getLogger(__name__)


@unique
class SourceOutcome(str, Enum):
    """Whether a discovery source produced candidates."""

    HIT = "hit"
    SOFT_MISS = "soft-miss"


class SourceResult(NamedTuple):
    """What a single discovery source found.

    A soft miss is an expected absence (no manifest, 404, unparsable XML) and
    carries the reason instead of candidates.
    """

    source: str
    outcome: SourceOutcome
    candidates: tuple[IconCandidate, ...] = ()
    reason: Optional[str] = None

    @classmethod
    def hit(cls, source: str, candidates: Iterable[IconCandidate]) -> "SourceResult":
        """Build a result for a source that yielded candidates, or a miss if it yielded none."""
        found = tuple(candidates)
        if not found:
            return cls.miss(source, "no icon references")
        return cls(source=source, outcome=SourceOutcome.HIT, candidates=found)

    @classmethod
    def miss(cls, source: str, reason: str) -> "SourceResult":
        """Build a soft-miss result."""
        return cls(source=source, outcome=SourceOutcome.SOFT_MISS, reason=reason)


class ParsedPage(NamedTuple):
    """The site's HTML page, parsed."""

    soup: BeautifulSoup
    base_url: str
    url: str


def parse_sizes(value: Any) -> tuple[Optional[int], bool]:
    """Parse a `sizes` attribute into (largest edge, scalable).

    Accepts "WxH", space separated lists of those, a bare number and "any".
    Unparsable values yield `(None, False)`.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return (value, False) if value > 0 else (None, False)
    if not isinstance(value, str):
        return None, False

    largest: Optional[int] = None
    scalable = False
    for token in value.lower().split():
        if token == "any":
            scalable = True
            continue
        edges = token.split("x")
        if len(edges) > 2 or not all(edge.isdigit() for edge in edges):
            continue
        edge = max(int(edge) for edge in edges)
        if edge > 0 and (largest is None or edge > largest):
            largest = edge
    return largest, scalable


def deduplicate(candidates: Iterable[IconCandidate]) -> list[IconCandidate]:
    """Collapse candidates that share a URL, keeping the highest-priority kind.

    Size and format details the survivor lacks are taken from the duplicates.
    The result is ordered by kind priority and then URL.
    """
    merged: dict[str, IconCandidate] = {}
    for candidate in candidates:
        existing = merged.get(candidate.url)
        if existing is None:
            merged[candidate.url] = candidate
            continue

        keep, drop = existing, candidate
        if KIND_PRIORITY[candidate.kind] < KIND_PRIORITY[existing.kind]:
            keep, drop = candidate, existing
        merged[candidate.url] = keep.model_copy(
            update={
                "declared_size": keep.declared_size or drop.declared_size,
                "scalable": keep.scalable or drop.scalable,
                "format_hint": keep.format_hint or drop.format_hint,
                "purpose": keep.purpose or drop.purpose,
            }
        )

    return sorted(merged.values(), key=lambda c: (KIND_PRIORITY[c.kind], c.url))


class CandidateDiscovery:
    """Enumerate icon candidates for a site.

    Every source is independent: a failure in one is recorded as a soft miss
    and never prevents the others from contributing.
    """

    fetcher: IconFetcher

    def __init__(self, fetcher: IconFetcher) -> None:
        self.fetcher = fetcher

    async def discover(
        self, site: SiteReference, forwarded_headers: Optional[Mapping[str, str]] = None
    ) -> list[IconCandidate]:
        """Return the deduplicated candidates for `site`. Never raises for remote failures."""
        origins = [root_url(site.url)]
        results: list[SourceResult] = [self._implicit_favicon(origins[0])]

        page = await self._fetch_page(site, forwarded_headers)
        if isinstance(page, SourceResult):
            results.append(page)
            results.extend(
                await self._gather_documents(
                    self._default_manifest_urls(site.url), None, forwarded_headers
                )
            )
        else:
            if root_url(page.url) != origins[0]:
                origins.append(root_url(page.url))
                results.append(self._implicit_favicon(origins[-1]))
            results.append(self.link_candidates(page.soup, page.base_url))
            results.append(self.ms_tile_candidates(page.soup, page.base_url))
            results.append(self.open_graph_candidates(page.soup, page.base_url))

            manifest_urls = self.manifest_urls(
                page.soup, page.base_url
            ) or self._default_manifest_urls(page.url)
            browserconfig_url = self.browserconfig_url(page.soup, page.base_url)
            results.extend(
                await self._gather_documents(manifest_urls, browserconfig_url, forwarded_headers)
            )

        # Last, so sizes the page declares for the same URLs win over the assumed one.
        results.extend(self._implicit_apple_touch(origin) for origin in origins)

        candidates: list[IconCandidate] = []
        for result in results:
            if result.outcome is SourceOutcome.SOFT_MISS:
                logger.debug(
                    f"Discovery source {result.source} missed for {site.url}: {result.reason}",
                    extra={"site": site.url, "source": result.source, "reason": result.reason},
                )
                continue
            candidates.extend(result.candidates)

        discovered = deduplicate(candidates)
        logger.debug(
            f"Discovered {len(discovered)} candidates for {site.url}",
            extra={"site": site.url, "candidates": len(discovered)},
        )
        return discovered

    @staticmethod
    def _implicit_favicon(origin: str) -> SourceResult:
        """Enumerate the conventional `/favicon.ico` without fetching it."""
        return SourceResult.hit(
            "favicon.ico",
            [
                IconCandidate(
                    url=f"{origin}/favicon.ico",
                    kind=IconKind.FAVICON_FILE,
                    format_hint=IconFormat.ICO,
                )
            ],
        )

    @staticmethod
    def _implicit_apple_touch(origin: str) -> SourceResult:
        """Enumerate the conventional root touch icons without fetching them."""
        return SourceResult.hit(
            "apple-touch-icon",
            [
                IconCandidate(
                    url=f"{origin}{path}",
                    kind=IconKind.APPLE_TOUCH,
                    declared_size=APPLE_TOUCH_ICON_SIZE,
                    format_hint=IconFormat.PNG,
                )
                for path in IMPLICIT_APPLE_TOUCH_PATHS
            ],
        )

    @staticmethod
    def _default_manifest_urls(url: str) -> list[str]:
        origin = root_url(url)
        return [f"{origin}{path}" for path in DEFAULT_MANIFEST_PATHS]

    async def _fetch_page(
        self, site: SiteReference, forwarded_headers: Optional[Mapping[str, str]]
    ) -> ParsedPage | SourceResult:
        """Fetch and parse the site's HTML page, or return the soft miss explaining why not."""
        try:
            resource = await self.fetcher.fetch(site.url, None, forwarded_headers)
        except FetchError as exc:
            return SourceResult.miss("page", str(exc))

        soup = BeautifulSoup(resource.text(), PARSER)
        base_url = resource.url
        base_tag = soup.find("base", href=True)
        if isinstance(base_tag, Tag):
            base_url = resolve_reference(resource.url, str(base_tag["href"])) or resource.url
        return ParsedPage(soup=soup, base_url=base_url, url=resource.url)

    @staticmethod
    def link_candidates(soup: BeautifulSoup, base_url: str) -> SourceResult:
        """Collect `<link>` icon declarations."""
        candidates = []
        for link in soup.find_all("link", href=True):
            kind = _link_kind(link.get("rel"))
            if kind is None:
                continue
            url = resolve_reference(base_url, str(link["href"]))
            if url is None:
                continue
            size, scalable = parse_sizes(link.get("sizes"))
            candidates.append(
                IconCandidate(
                    url=url,
                    kind=kind,
                    declared_size=size,
                    scalable=scalable,
                    format_hint=IconFormat.from_hint(_attribute(link, "type"), url),
                )
            )
        return SourceResult.hit("link", candidates)

    @staticmethod
    def ms_tile_candidates(soup: BeautifulSoup, base_url: str) -> SourceResult:
        """Collect Microsoft tile images declared in `<meta>` tags."""
        candidates = []
        for meta in soup.find_all("meta", content=True):
            name = (_attribute(meta, "name") or "").lower()
            if name not in MS_TILE_META_NAMES:
                continue
            url = resolve_reference(base_url, _attribute(meta, "content"))
            if url is None:
                continue
            candidates.append(
                IconCandidate(
                    url=url,
                    kind=IconKind.MS_TILE,
                    declared_size=MS_TILE_SIZES.get(name),
                    format_hint=IconFormat.from_hint(None, url),
                )
            )
        return SourceResult.hit("ms-tile", candidates)

    @staticmethod
    def open_graph_candidates(soup: BeautifulSoup, base_url: str) -> SourceResult:
        """Collect Open Graph preview images as a last resort."""
        candidates = []
        for meta in soup.find_all("meta", content=True):
            prop = (_attribute(meta, "property") or _attribute(meta, "name") or "").lower()
            if prop not in OPEN_GRAPH_PROPERTIES:
                continue
            url = resolve_reference(base_url, _attribute(meta, "content"))
            if url is None:
                continue
            candidates.append(
                IconCandidate(
                    url=url,
                    kind=IconKind.OPEN_GRAPH_FALLBACK,
                    format_hint=IconFormat.from_hint(None, url),
                )
            )
        return SourceResult.hit("open-graph", candidates)

    @staticmethod
    def manifest_urls(soup: BeautifulSoup, base_url: str) -> list[str]:
        """Return the absolute URLs of every manifest the page declares."""
        urls = []
        for link in soup.select(MANIFEST_SELECTOR):
            url = resolve_reference(base_url, _attribute(link, "href"))
            if url is not None and url not in urls:
                urls.append(url)
        return urls

    @staticmethod
    def browserconfig_url(soup: BeautifulSoup, base_url: str) -> Optional[str]:
        """Return the absolute URL of the page's `browserconfig.xml`, if declared."""
        for meta in soup.find_all("meta", content=True):
            if (_attribute(meta, "name") or "").lower() != MS_CONFIG_META_NAME:
                continue
            content = _attribute(meta, "content") or ""
            if content.strip().lower() == "none":
                return None
            return resolve_reference(base_url, content)
        return None

    async def _gather_documents(
        self,
        manifest_urls: list[str],
        browserconfig_url: Optional[str],
        forwarded_headers: Optional[Mapping[str, str]],
    ) -> list[SourceResult]:
        """Fetch manifests and the browserconfig concurrently."""
        tasks = [self._manifest_candidates(url, forwarded_headers) for url in manifest_urls]
        if browserconfig_url is not None:
            tasks.append(self._browserconfig_candidates(browserconfig_url, forwarded_headers))
        return list(await asyncio.gather(*tasks))

    async def _manifest_candidates(
        self, manifest_url: str, forwarded_headers: Optional[Mapping[str, str]]
    ) -> SourceResult:
        source = f"manifest {manifest_url}"
        try:
            resource = await self.fetcher.fetch(
                manifest_url, IconKind.MANIFEST_ENTRY, forwarded_headers
            )
        except FetchError as exc:
            return SourceResult.miss(source, str(exc))
        return self.parse_manifest(resource, source)

    @staticmethod
    def parse_manifest(resource: FetchedResource, source: str = "manifest") -> SourceResult:
        """Read `icons[]` from a Web App Manifest, resolving `src` against its final URL."""
        try:
            manifest = json.loads(resource.text().lstrip("\ufeff"))
        except ValueError as exc:
            return SourceResult.miss(source, f"invalid JSON: {exc}")

        icons = manifest.get("icons") if isinstance(manifest, dict) else None
        if not isinstance(icons, list):
            return SourceResult.miss(source, "no icons array")

        candidates = []
        for entry in icons:
            if not isinstance(entry, dict) or not isinstance(entry.get("src"), str):
                continue
            url = resolve_reference(resource.url, entry["src"])
            if url is None:
                continue
            size, scalable = parse_sizes(entry.get("sizes"))
            mime_type = entry.get("type") if isinstance(entry.get("type"), str) else None
            purpose = entry.get("purpose") if isinstance(entry.get("purpose"), str) else None
            candidates.append(
                IconCandidate(
                    url=url,
                    kind=IconKind.MANIFEST_ENTRY,
                    declared_size=size,
                    scalable=scalable,
                    format_hint=IconFormat.from_hint(mime_type, url),
                    purpose=purpose,
                )
            )
        return SourceResult.hit(source, candidates)

    async def _browserconfig_candidates(
        self, config_url: str, forwarded_headers: Optional[Mapping[str, str]]
    ) -> SourceResult:
        source = f"browserconfig {config_url}"
        try:
            resource = await self.fetcher.fetch(config_url, IconKind.MS_TILE, forwarded_headers)
        except FetchError as exc:
            return SourceResult.miss(source, str(exc))
        return self.parse_browserconfig(resource, source)

    @staticmethod
    def parse_browserconfig(
        resource: FetchedResource, source: str = "browserconfig"
    ) -> SourceResult:
        """Read tile images from a `browserconfig.xml` document."""
        if b"<!ENTITY" in resource.content.upper():
            return SourceResult.miss(source, "document declares entities")
        try:
            root = ElementTree.fromstring(resource.content)
        except ElementTree.ParseError as exc:
            return SourceResult.miss(source, f"invalid XML: {exc}")

        candidates = []
        for element in root.iter():
            name = element.tag.rsplit("}", 1)[-1].lower()
            if name not in MS_TILE_SIZES:
                continue
            reference = element.get("src") or (element.text or "").strip()
            url = resolve_reference(resource.url, reference)
            if url is None:
                continue
            candidates.append(
                IconCandidate(
                    url=url,
                    kind=IconKind.MS_TILE,
                    declared_size=MS_TILE_SIZES[name],
                    format_hint=IconFormat.from_hint(None, url),
                )
            )
        return SourceResult.hit(source, candidates)


def _attribute(tag: Tag, name: str) -> Optional[str]:
    """Return a single-valued attribute as a string."""
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value


def _link_kind(rel: Any) -> Optional[IconKind]:
    """Map a `rel` attribute (a token list in bs4) to the kind of icon it declares."""
    if not rel:
        return None
    tokens = [rel] if isinstance(rel, str) else list(rel)
    joined = " ".join(tokens).lower()
    if joined in LINK_REL_KINDS:
        return LINK_REL_KINDS[joined]

    kinds = [LINK_REL_KINDS[token.lower()] for token in tokens if token.lower() in LINK_REL_KINDS]
    if not kinds:
        return None
    return min(kinds, key=lambda kind: KIND_PRIORITY[kind])

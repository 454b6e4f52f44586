"""Data models for icon resolution"""

from enum import Enum, unique
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


@unique
class IconKind(str, Enum):
    """Where a candidate icon reference was discovered."""

    FAVICON_FILE = "favicon-file"
    LINK_TAG = "link-tag"
    APPLE_TOUCH = "apple-touch"
    MANIFEST_ENTRY = "manifest-entry"
    MS_TILE = "ms-tile"
    OPEN_GRAPH_FALLBACK = "open-graph-fallback"


@unique
class IconFormat(str, Enum):
    """Image formats recognized by the content validator."""

    ICO = "ico"
    PNG = "png"
    JPEG = "jpeg"
    GIF = "gif"
    WEBP = "webp"
    BMP = "bmp"
    SVG = "svg"

    @property
    def mime_type(self) -> str:
        """Return the canonical MIME type for this format."""
        return _MIME_TYPES[self]

    @classmethod
    def from_hint(cls, mime_type: Optional[str], url: str = "") -> Optional["IconFormat"]:
        """Guess a format from a declared MIME type, falling back to the URL extension."""
        if mime_type:
            normalized = mime_type.split(";")[0].strip().lower()
            if normalized in _MIME_ALIASES:
                return _MIME_ALIASES[normalized]

        path = url.split("?")[0].split("#")[0].lower()
        for extension, icon_format in _EXTENSIONS.items():
            if path.endswith(extension):
                return icon_format
        return None


_MIME_TYPES: dict[IconFormat, str] = {
    IconFormat.ICO: "image/x-icon",
    IconFormat.PNG: "image/png",
    IconFormat.JPEG: "image/jpeg",
    IconFormat.GIF: "image/gif",
    IconFormat.WEBP: "image/webp",
    IconFormat.BMP: "image/bmp",
    IconFormat.SVG: "image/svg+xml",
}

_MIME_ALIASES: dict[str, IconFormat] = {
    **{mime: icon_format for icon_format, mime in _MIME_TYPES.items()},
    "image/vnd.microsoft.icon": IconFormat.ICO,
    "image/ico": IconFormat.ICO,
    "image/icon": IconFormat.ICO,
    "image/jpg": IconFormat.JPEG,
    "image/svg": IconFormat.SVG,
}

_EXTENSIONS: dict[str, IconFormat] = {
    ".ico": IconFormat.ICO,
    ".png": IconFormat.PNG,
    ".jpg": IconFormat.JPEG,
    ".jpeg": IconFormat.JPEG,
    ".gif": IconFormat.GIF,
    ".webp": IconFormat.WEBP,
    ".bmp": IconFormat.BMP,
    ".svg": IconFormat.SVG,
}


class CacheKey(NamedTuple):
    """Key of a memoized resolution."""

    url: str
    size: Optional[int]


class SiteReference(BaseModel):
    """A normalized, absolute site URL. Always carries a scheme and a host."""

    model_config = ConfigDict(frozen=True)

    url: str
    scheme: str
    host: str

    def cache_key(self, size: Optional[int]) -> CacheKey:
        """Build the cache key for a resolution of this site at `size`."""
        return CacheKey(self.url, size)


class IconCandidate(BaseModel):
    """A discovered reference to a possible icon. Not fetched yet."""

    model_config = ConfigDict(frozen=True)

    url: str
    kind: IconKind
    declared_size: Optional[int] = None
    scalable: bool = False
    format_hint: Optional[IconFormat] = None
    purpose: Optional[str] = None


class IconMetadata(BaseModel):
    """Serializable description of an icon.

    Alternates that were never validated only carry what their source declared,
    so `bytes` and the decoded dimensions are unknown for them.
    """

    kind: IconKind
    url: str
    size: Optional[int]
    format: Optional[IconFormat] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bytes: Optional[int] = None

    @classmethod
    def from_candidate(cls, candidate: IconCandidate) -> "IconMetadata":
        """Describe a candidate from its declared metadata alone."""
        return cls(
            kind=candidate.kind,
            url=candidate.url,
            size=candidate.declared_size,
            format=candidate.format_hint,
        )


class ValidatedIcon(BaseModel):
    """A candidate whose payload was fetched and confirmed to be a real image.

    Only the content validator creates these.
    """

    model_config = ConfigDict(frozen=True)

    candidate: IconCandidate
    content: bytes = Field(repr=False)
    format: IconFormat
    byte_length: int
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def url(self) -> str:
        """Return the URL the icon was requested from."""
        return self.candidate.url

    @property
    def kind(self) -> IconKind:
        """Return the kind of the underlying candidate."""
        return self.candidate.kind

    @property
    def content_type(self) -> str:
        """Return the MIME type of the confirmed format."""
        return self.format.mime_type

    @property
    def scalable(self) -> bool:
        """Return whether the icon renders at any size."""
        return self.format is IconFormat.SVG or self.candidate.scalable

    @property
    def size(self) -> Optional[int]:
        """Return the declared size, or the largest decoded edge when none was declared."""
        if self.candidate.declared_size is not None:
            return self.candidate.declared_size
        if self.width is not None and self.height is not None:
            return max(self.width, self.height)
        return None

    def metadata(self) -> IconMetadata:
        """Describe this icon without its payload."""
        return IconMetadata(
            kind=self.kind,
            url=self.url,
            size=self.size,
            format=self.format,
            width=self.width,
            height=self.height,
            bytes=self.byte_length,
        )


class ScoredIcon(BaseModel):
    """A validated icon and the score it received for a request."""

    model_config = ConfigDict(frozen=True)

    icon: ValidatedIcon
    score: int
    requested_size: Optional[int] = None


class ResolutionResult(BaseModel):
    """Outcome of resolving the best icon for a site.

    `best` is `None` when the site exposes no usable icon. That is an expected
    outcome and not an error.
    """

    model_config = ConfigDict(frozen=True)

    site: SiteReference
    requested_size: Optional[int] = None
    icons: tuple[IconMetadata, ...] = ()
    best: Optional[ScoredIcon] = None
    content_hash: Optional[str] = None
    candidate_count: int = 0

    @property
    def found(self) -> bool:
        """Return whether a usable icon was found."""
        return self.best is not None

    @property
    def etag(self) -> Optional[str]:
        """Return the quoted entity tag of the winning payload."""
        return f'"{self.content_hash}"' if self.content_hash else None

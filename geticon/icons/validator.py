"""Content validation for fetched icon payloads"""

import logging
import re
import struct
from io import BytesIO
from typing import Optional
from xml.etree import ElementTree

from PIL import Image as PILImage

from geticon.exceptions import InvalidImageContent
from geticon.icons.constants import SNIFF_WINDOW
from geticon.icons.fetcher import FetchedResource
from geticon.icons.models import IconCandidate, IconFormat, ValidatedIcon

logger = logging.getLogger(__name__)

_RASTER_SIGNATURES: tuple[tuple[bytes, IconFormat], ...] = (
    (b"\x89PNG\r\n\x1a\n", IconFormat.PNG),
    (b"GIF87a", IconFormat.GIF),
    (b"GIF89a", IconFormat.GIF),
    (b"\xff\xd8\xff", IconFormat.JPEG),
    (b"\x00\x00\x01\x00", IconFormat.ICO),
    (b"BM", IconFormat.BMP),
)

_HTML_MARKERS: tuple[str, ...] = ("<html", "<head", "<body")
_SVG_LENGTH = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$")


def _leading_text(content: bytes) -> str:
    """Decode the first bytes of a payload for markup sniffing."""
    head = content[:SNIFF_WINDOW]
    if head.startswith(b"\xef\xbb\xbf"):
        head = head[3:]
    return head.decode("utf-8", errors="ignore").lstrip().lower()


def _looks_like_html(text: str) -> bool:
    if text.startswith("<!doctype html"):
        return True
    return any(marker in text for marker in _HTML_MARKERS)


def is_html_content(content: bytes) -> bool:
    """Check if a payload is an HTML document rather than an image."""
    return _looks_like_html(_leading_text(content))


def sniff_format(content: bytes) -> Optional[IconFormat]:
    """Identify the image format from leading bytes, ignoring any declared content type."""
    for signature, icon_format in _RASTER_SIGNATURES:
        if content.startswith(signature):
            return icon_format

    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return IconFormat.WEBP

    text = _leading_text(content)
    svg_start = text.find("<svg")
    # Markup inside the svg element, such as a foreignObject body, is not HTML.
    if text.startswith("<") and svg_start >= 0 and not _looks_like_html(text[:svg_start]):
        return IconFormat.SVG

    return None


class ContentValidator:
    """Confirm that fetched bytes are a genuine, decodable image."""

    def validate(self, candidate: IconCandidate, resource: FetchedResource) -> ValidatedIcon:
        """Validate a fetched payload and build the `ValidatedIcon` for it.

        Raises:
            InvalidImageContent: if the payload is empty, markup, or not decodable.
        """
        content = resource.content
        if not content:
            raise InvalidImageContent(candidate.url, "empty body")

        icon_format = sniff_format(content)
        if icon_format is None:
            if is_html_content(content):
                raise InvalidImageContent(
                    candidate.url,
                    f"HTML document served as {resource.content_type or 'unknown type'}",
                )
            raise InvalidImageContent(candidate.url, "unrecognized image signature")

        if icon_format is IconFormat.SVG:
            width, height = self._inspect_svg(candidate.url, content)
        else:
            width, height = self._decode_raster(candidate.url, content, icon_format)

        if candidate.format_hint is not None and candidate.format_hint is not icon_format:
            logger.debug(
                f"Declared format {candidate.format_hint.value} differs from sniffed "
                f"{icon_format.value} for {candidate.url}"
            )

        return ValidatedIcon(
            candidate=candidate,
            content=content,
            format=icon_format,
            byte_length=len(content),
            width=width,
            height=height,
        )

    @staticmethod
    def _decode_raster(
        url: str, content: bytes, icon_format: IconFormat
    ) -> tuple[Optional[int], Optional[int]]:
        """Fully decode a raster image with Pillow and return its dimensions."""
        try:
            with PILImage.open(BytesIO(content)) as image:
                image.verify()
            # `verify` leaves the image unusable, so decode pixel data from a fresh handle.
            with PILImage.open(BytesIO(content)) as image:
                image.load()
                width, height = image.size
        except (
            OSError,
            SyntaxError,
            ValueError,
            struct.error,
            PILImage.DecompressionBombError,
        ) as exc:
            raise InvalidImageContent(
                url, f"{icon_format.value} failed to decode: {exc}"
            ) from exc

        if width <= 0 or height <= 0:
            raise InvalidImageContent(url, f"{icon_format.value} has no pixels")
        return width, height

    @staticmethod
    def _inspect_svg(url: str, content: bytes) -> tuple[Optional[int], Optional[int]]:
        """Parse an SVG document and return its intrinsic dimensions when declared."""
        if b"<!ENTITY" in content.upper():
            raise InvalidImageContent(url, "svg declares entities")

        try:
            root = ElementTree.fromstring(content)
        except ElementTree.ParseError as exc:
            raise InvalidImageContent(url, f"svg failed to parse: {exc}") from exc

        if root.tag.rsplit("}", 1)[-1].lower() != "svg":
            raise InvalidImageContent(url, f"root element is {root.tag!r}, not svg")

        width = _svg_length(root.get("width"))
        height = _svg_length(root.get("height"))
        if width is None or height is None:
            view_box = (root.get("viewBox") or "").replace(",", " ").split()
            if len(view_box) == 4:
                try:
                    width, height = (round(float(view_box[2])), round(float(view_box[3])))
                except ValueError:
                    return None, None
        if not width or not height or width < 0 or height < 0:
            return None, None
        return width, height


def _svg_length(value: Optional[str]) -> Optional[int]:
    """Parse an absolute SVG length such as "32" or "32px". Relative units yield `None`."""
    if not value:
        return None
    match = _SVG_LENGTH.match(value)
    return round(float(match.group(1))) if match else None

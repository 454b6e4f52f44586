"""Constants for icon discovery, fetching and scoring"""

from typing import NamedTuple

from geticon.icons.models import IconFormat, IconKind

# Scraper selectors
LINK_REL_KINDS: dict[str, IconKind] = {
    "icon": IconKind.LINK_TAG,
    "shortcut icon": IconKind.LINK_TAG,
    "mask-icon": IconKind.LINK_TAG,
    "apple-touch-icon": IconKind.APPLE_TOUCH,
    "apple-touch-icon-precomposed": IconKind.APPLE_TOUCH,
}

MANIFEST_SELECTOR: str = 'link[rel~="manifest"]'

MS_TILE_META_NAMES: tuple[str, ...] = (
    "msapplication-tileimage",
    "msapplication-square70x70logo",
    "msapplication-square150x150logo",
    "msapplication-square310x310logo",
    "msapplication-wide310x150logo",
)

MS_CONFIG_META_NAME: str = "msapplication-config"

OPEN_GRAPH_PROPERTIES: tuple[str, ...] = ("og:image", "og:image:url", "og:image:secure_url")

PARSER: str = "html.parser"

# Locations probed when a page declares no manifest.
DEFAULT_MANIFEST_PATHS: tuple[str, ...] = ("/manifest.json", "/site.webmanifest")

# Touch icons iOS requests from the site root when a page declares none.
IMPLICIT_APPLE_TOUCH_PATHS: tuple[str, ...] = (
    "/apple-touch-icon.png",
    "/apple-touch-icon-precomposed.png",
)
APPLE_TOUCH_ICON_SIZE: int = 180

# Sizes Microsoft documents for the tile images named in meta tags and browserconfig.xml.
MS_TILE_SIZES: dict[str, int] = {
    "msapplication-tileimage": 144,
    "msapplication-square70x70logo": 70,
    "msapplication-square150x150logo": 150,
    "msapplication-square310x310logo": 310,
    "msapplication-wide310x150logo": 310,
    "square70x70logo": 70,
    "square150x150logo": 150,
    "square310x310logo": 310,
    "wide310x150logo": 310,
    "tileimage": 144,
}

# Constants for reference validation
MANIFEST_JSON_BASE64_MARKER: str = "/application/manifest+json;base64,"
UNSUPPORTED_SCHEMES: tuple[str, ...] = ("javascript:", "mailto:", "data:", "blob:", "about:")

# Kind priority for deduplication and tie-breaks (lower is better)
KIND_PRIORITY: dict[IconKind, int] = {
    IconKind.FAVICON_FILE: 1,
    IconKind.LINK_TAG: 2,
    IconKind.APPLE_TOUCH: 3,
    IconKind.MANIFEST_ENTRY: 4,
    IconKind.MS_TILE: 5,
    IconKind.OPEN_GRAPH_FALLBACK: 6,
}

# Scoring weights
FORMAT_WEIGHTS: dict[IconFormat, int] = {
    IconFormat.SVG: 50,
    IconFormat.PNG: 40,
    IconFormat.WEBP: 35,
    IconFormat.ICO: 25,
    IconFormat.GIF: 15,
    IconFormat.JPEG: 10,
    IconFormat.BMP: 5,
}
UNKNOWN_FORMAT_WEIGHT: int = 20

KIND_WEIGHTS: dict[IconKind, int] = {
    IconKind.FAVICON_FILE: 25,
    IconKind.LINK_TAG: 24,
    IconKind.APPLE_TOUCH: 20,
    IconKind.MANIFEST_ENTRY: 18,
    IconKind.MS_TILE: 12,
    # Open Graph images are page previews, not icons.
    IconKind.OPEN_GRAPH_FALLBACK: -60,
}

SIZE_FIT_MAX: int = 100
SIZE_FIT_NEUTRAL: int = 50
# An icon at least as large as requested never scores below this.
SIZE_FIT_OVERSIZE_FLOOR: int = 70
# An icon smaller than requested always scores below this.
SIZE_FIT_UNDERSIZE_CEILING: int = 60

# (minimum edge, fit) bands used when no size is requested
SIZE_QUALITY_BANDS: tuple[tuple[int, int], ...] = (
    (512, 100),
    (256, 90),
    (192, 80),
    (128, 70),
    (64, 55),
    (32, 40),
    (0, 25),
)


class UserAgentProfile(NamedTuple):
    """Client identity presented to remote sites."""

    name: str
    user_agent: str
    accept: str


DESKTOP_CHROME = UserAgentProfile(
    name="windows-chrome",
    user_agent=(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    accept="text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
)

IOS_SAFARI = UserAgentProfile(
    name="ios-safari",
    user_agent=(
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1"
    ),
    accept="image/webp,image/png,image/svg+xml,image/*;q=0.8,*/*;q=0.5",
)

ANDROID_CHROME = UserAgentProfile(
    name="android-chrome",
    user_agent=(
        "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Mobile Safari/537.36"
    ),
    accept="application/manifest+json,application/json,image/avif,image/webp,image/*,*/*;q=0.8",
)

WINDOWS_EDGE = UserAgentProfile(
    name="windows-edge",
    user_agent=(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36 Edg/124.0.0.0"
    ),
    accept="application/xml,image/avif,image/webp,image/*,*/*;q=0.8",
)

USER_AGENT_PROFILES: dict[IconKind, UserAgentProfile] = {
    IconKind.FAVICON_FILE: DESKTOP_CHROME,
    IconKind.LINK_TAG: DESKTOP_CHROME,
    IconKind.APPLE_TOUCH: IOS_SAFARI,
    IconKind.MANIFEST_ENTRY: ANDROID_CHROME,
    IconKind.MS_TILE: WINDOWS_EDGE,
    IconKind.OPEN_GRAPH_FALLBACK: DESKTOP_CHROME,
}

# Incoming request headers copied onto outbound fetches.
FORWARDED_HEADERS: tuple[str, ...] = (
    "Accept-Language",
    "Sec-Ch-Ua",
    "Sec-Ch-Ua-Mobile",
    "Sec-Ch-Ua-Platform",
)

# Leading bytes inspected when sniffing for markup.
SNIFF_WINDOW: int = 1024

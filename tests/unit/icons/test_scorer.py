# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Unit tests for the scorer.py module."""

from typing import Optional

import pytest

from geticon.icons.models import IconCandidate, IconFormat, IconKind, ValidatedIcon
from geticon.icons.scorer import IconScorer


def validated(
    url: str,
    kind: IconKind = IconKind.LINK_TAG,
    icon_format: IconFormat = IconFormat.PNG,
    size: Optional[int] = None,
    byte_length: int = 100,
) -> ValidatedIcon:
    """Build a validated icon without decoding anything."""
    return ValidatedIcon(
        candidate=IconCandidate(url=url, kind=kind, declared_size=size),
        content=b"\x00" * byte_length,
        format=icon_format,
        byte_length=byte_length,
        width=size,
        height=size,
    )


@pytest.fixture(name="scorer")
def fixture_scorer() -> IconScorer:
    """Return an icon scorer."""
    return IconScorer()


@pytest.mark.parametrize("requested_size", [16, 32, 64, 128, 192, 256, 512])
def test_size_fit_monotonic(requested_size: int) -> None:
    """Test that no icon below the requested size beats one at or above it, and that among
    icons at or above it the closest wins.
    """
    at_or_above = [
        IconScorer.size_fit(size, False, requested_size)
        for size in range(requested_size, requested_size * 8)
    ]
    below = [IconScorer.size_fit(size, False, requested_size) for size in range(1, requested_size)]

    assert at_or_above[0] == 100
    assert at_or_above == sorted(at_or_above, reverse=True)
    assert min(at_or_above) >= 70
    assert max(below) < 60
    assert below == sorted(below)


@pytest.mark.parametrize(
    ["size", "scalable", "requested_size", "expected"],
    [
        (None, False, 64, 50),
        (None, False, None, 50),
        (None, True, 64, 100),
        (16, True, 512, 100),
        (512, False, None, 100),
        (192, False, None, 80),
        (16, False, None, 25),
        (64, False, 64, 100),
        (128, False, 64, 85),
        (32, False, 64, 30),
    ],
)
def test_size_fit(
    size: Optional[int], scalable: bool, requested_size: Optional[int], expected: int
) -> None:
    """Test size fit for known, unknown and scalable icons."""
    assert IconScorer.size_fit(size, scalable, requested_size) == expected


def test_format_weights_order() -> None:
    """Test that vector and lossless formats outrank lossy and legacy ones."""
    ordered = [
        IconFormat.SVG,
        IconFormat.PNG,
        IconFormat.WEBP,
        IconFormat.ICO,
        IconFormat.GIF,
        IconFormat.JPEG,
        IconFormat.BMP,
    ]
    weights = [IconScorer.format_weight(icon_format) for icon_format in ordered]

    assert weights == sorted(weights, reverse=True)
    assert len(set(weights)) == len(weights)


def test_link_tag_beats_open_graph(scorer: IconScorer) -> None:
    """Test that a small declared icon beats a large page preview image."""
    link = validated("https://example.com/favicon-32.png", IconKind.LINK_TAG, size=32)
    preview = validated(
        "https://example.com/og.png", IconKind.OPEN_GRAPH_FALLBACK, size=1200, byte_length=90_000
    )

    ranked = scorer.rank([preview, link], None)

    assert ranked[0].icon is link


def test_large_manifest_icon_beats_small_favicon(scorer: IconScorer) -> None:
    """Test that an icon at the requested size beats a smaller favicon of a higher kind."""
    favicon = validated(
        "https://example.com/favicon.ico", IconKind.FAVICON_FILE, IconFormat.ICO, size=32
    )
    manifest = validated("https://example.com/icon-192.png", IconKind.MANIFEST_ENTRY, size=192)

    ranked = scorer.rank([favicon, manifest], 192)

    assert ranked[0].icon is manifest
    assert ranked[0].requested_size == 192


def test_rank_tie_breaks(scorer: IconScorer) -> None:
    """Test that equal scores break by kind priority, then byte length, then URL."""
    small = validated("https://example.com/a.png", size=64, byte_length=10)
    large = validated("https://example.com/b.png", size=64, byte_length=20)
    same_bytes = validated("https://example.com/c.png", size=64, byte_length=20)

    ranked = scorer.rank([same_bytes, small, large], 64)

    assert [scored.icon.url for scored in ranked] == [
        "https://example.com/b.png",
        "https://example.com/c.png",
        "https://example.com/a.png",
    ]


def test_rank_is_deterministic(scorer: IconScorer) -> None:
    """Test that the input order never affects the ranking."""
    icons = [
        validated("https://example.com/favicon.ico", IconKind.FAVICON_FILE, IconFormat.ICO),
        validated("https://example.com/touch.png", IconKind.APPLE_TOUCH, size=180),
        validated("https://example.com/logo.svg", IconKind.LINK_TAG, IconFormat.SVG),
        validated("https://example.com/tile.png", IconKind.MS_TILE, size=144),
    ]

    forward = [scored.icon.url for scored in scorer.rank(icons, 64)]
    backward = [scored.icon.url for scored in scorer.rank(list(reversed(icons)), 64)]

    assert forward == backward
    assert forward[0] == "https://example.com/logo.svg"


def test_rank_candidates(scorer: IconScorer) -> None:
    """Test that candidates are ranked from declared metadata."""
    candidates = [
        IconCandidate(
            url="https://example.com/favicon.ico",
            kind=IconKind.FAVICON_FILE,
            format_hint=IconFormat.ICO,
        ),
        IconCandidate(
            url="https://example.com/og.jpg",
            kind=IconKind.OPEN_GRAPH_FALLBACK,
            format_hint=IconFormat.JPEG,
        ),
        IconCandidate(
            url="https://example.com/icon.svg", kind=IconKind.LINK_TAG, scalable=True
        ),
        IconCandidate(
            url="https://example.com/android-chrome-192.png",
            kind=IconKind.MANIFEST_ENTRY,
            declared_size=192,
            format_hint=IconFormat.PNG,
        ),
    ]

    ranked = [candidate.url for candidate in scorer.rank_candidates(candidates, 192)]

    assert ranked == [
        "https://example.com/android-chrome-192.png",
        "https://example.com/icon.svg",
        "https://example.com/favicon.ico",
        "https://example.com/og.jpg",
    ]

# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Unit tests for the icon lookup API."""

import hashlib
import logging
from typing import Any

import pytest
from fastapi.testclient import TestClient
from pytest import LogCaptureFixture
from pytest_mock import MockerFixture

from geticon.exceptions import InternalInconsistency
from geticon.icons import get_engine
from geticon.icons.engine import IconEngine
from geticon.main import app
from tests.types import FilterCaplogFixture
from tests.fakes import FakeWeb, make_ico, make_png

PAGE = (
    "<html><head>"
    '<link rel="icon" type="image/png" sizes="64x64" href="/icon-64.png">'
    "</head></html>"
)


@pytest.fixture(name="site")
def fixture_site(fake_web: FakeWeb) -> dict[str, bytes]:
    """Serve a site with a PNG link icon and a favicon, returning the payloads."""
    icons = {"png": make_png(64), "ico": make_ico(16)}
    fake_web.page("https://example.com/", PAGE)
    fake_web.add("https://example.com/icon-64.png", icons["png"], "image/png")
    fake_web.add("https://example.com/favicon.ico", icons["ico"], "image/x-icon")
    return icons


def test_img(client: TestClient, site: dict[str, bytes]) -> None:
    """Test that the best icon is returned as raw bytes with caching headers."""
    response = client.get("/api/v1/img", params={"url": "example.com"})

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "image/png"
    assert response.content == site["png"]
    assert response.headers["ETag"] == f'"{hashlib.sha256(site["png"]).hexdigest()}"'
    assert response.headers["Cache-Control"] == "public, max-age=3600"


def test_img_not_modified(client: TestClient, site: dict[str, bytes]) -> None:
    """Test that a matching If-None-Match is answered with 304 and no body."""
    etag = client.get("/api/v1/img", params={"url": "example.com"}).headers["ETag"]

    response = client.get(
        "/api/v1/img", params={"url": "example.com"}, headers={"If-None-Match": f"W/{etag}"}
    )

    assert response.status_code == 304
    assert response.content == b""
    assert response.headers["ETag"] == etag


def test_img_stale_etag(client: TestClient, site: dict[str, bytes]) -> None:
    """Test that a different entity tag gets the full payload."""
    response = client.get(
        "/api/v1/img", params={"url": "example.com"}, headers={"If-None-Match": '"stale"'}
    )

    assert response.status_code == 200
    assert response.content == site["png"]


def test_img_requested_size(client: TestClient, fake_web: FakeWeb) -> None:
    """Test that the size parameter steers selection towards the closest larger icon."""
    fake_web.page(
        "https://example.com/",
        '<html><head><link rel="icon" sizes="16x16" href="/16.png">'
        '<link rel="icon" sizes="128x128" href="/128.png"></head></html>',
    )
    large = make_png(128)
    fake_web.add("https://example.com/16.png", make_png(16), "image/png")
    fake_web.add("https://example.com/128.png", large, "image/png")

    response = client.get("/api/v1/img", params={"url": "example.com", "size": 96})

    assert response.status_code == 200
    assert response.content == large


def test_json(client: TestClient, site: dict[str, bytes]) -> None:
    """Test that icon metadata and the chosen best icon are returned."""
    response = client.get("/api/v1/json", params={"url": "https://Example.com/"})

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/json"
    assert response.headers["Cache-Control"] == "public, max-age=3600"
    assert response.headers["ETag"] == f'"{hashlib.sha256(response.content).hexdigest()}"'

    body = response.json()
    assert body["url"] == "https://example.com"
    best = body["best_icon"]
    assert best["url"] == "https://example.com/icon-64.png"
    assert best["kind"] == "link-tag"
    assert best["format"] == "png"
    assert best["size"] == 64
    assert best["width"] == 64
    assert best["height"] == 64
    assert best["bytes"] == len(site["png"])
    assert isinstance(best["score"], int)
    assert [icon["url"] for icon in body["icons"]] == [
        "https://example.com/icon-64.png",
        "https://example.com/favicon.ico",
    ]


def test_json_not_modified(client: TestClient, site: dict[str, bytes]) -> None:
    """Test that the JSON representation can be revalidated too."""
    etag = client.get("/api/v1/json", params={"url": "example.com"}).headers["ETag"]

    response = client.get(
        "/api/v1/json", params={"url": "example.com"}, headers={"If-None-Match": etag}
    )

    assert response.status_code == 304
    assert response.headers["ETag"] == etag


def test_lookups_share_cache(
    client: TestClient, fake_web: FakeWeb, site: dict[str, bytes]
) -> None:
    """Test that repeated lookups of one site are served from the cache."""
    client.get("/api/v1/img", params={"url": "example.com"})
    client.get("/api/v1/json", params={"url": "EXAMPLE.com"})

    assert sum(1 for request in fake_web.requests if request.url.path == "/") == 1


def test_forwards_client_headers(
    client: TestClient, fake_web: FakeWeb, site: dict[str, bytes]
) -> None:
    """Test that allow-listed client headers reach the remote site, other headers do not."""
    client.get(
        "/api/v1/img",
        params={"url": "example.com"},
        headers={"Accept-Language": "de-DE", "Cookie": "session=secret"},
    )

    request = fake_web.request_to("https://example.com/")
    assert request.headers["Accept-Language"] == "de-DE"
    assert "Cookie" not in request.headers


@pytest.mark.parametrize("endpoint", ["/api/v1/img", "/api/v1/json"])
@pytest.mark.parametrize(
    "params",
    [
        {},
        {"url": ""},
        {"url": "example.com", "size": 0},
        {"url": "example.com", "size": -16},
        {"url": "example.com", "size": "large"},
        {"url": "example.com", "size": 100_000},
        {"url": "ftp://example.com"},
        {"url": "http://"},
        {"url": f"https://example.com/{'a' * 5000}"},
    ],
    ids=[
        "missing-url",
        "empty-url",
        "zero-size",
        "negative-size",
        "non-numeric-size",
        "size-too-large",
        "unsupported-scheme",
        "missing-host",
        "url-too-long",
    ],
)
def test_bad_request(
    client: TestClient, fake_web: FakeWeb, endpoint: str, params: dict[str, Any]
) -> None:
    """Test that invalid input is rejected with 400 before anything is fetched."""
    response = client.get(endpoint, params=params)

    assert response.status_code == 400
    assert fake_web.requests == []


@pytest.mark.parametrize("endpoint", ["/api/v1/img", "/api/v1/json"])
def test_not_found(client: TestClient, endpoint: str) -> None:
    """Test that a site without any usable icon answers 404."""
    response = client.get(endpoint, params={"url": "example.com"})

    assert response.status_code == 404
    assert response.json() == {"detail": "No usable icon found for https://example.com"}


def test_internal_inconsistency(
    mocker: MockerFixture,
    caplog: LogCaptureFixture,
    filter_caplog: FilterCaplogFixture,
) -> None:
    """Test that an impossible engine state is logged and answered with 500."""
    caplog.set_level(logging.ERROR)
    engine = mocker.AsyncMock(spec=IconEngine)
    engine.resolve.side_effect = InternalInconsistency("winner without payload")
    app.dependency_overrides[get_engine] = lambda: engine

    try:
        response = TestClient(app).get("/api/v1/img", params={"url": "example.com"})
    finally:
        del app.dependency_overrides[get_engine]

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error"}
    records = filter_caplog(caplog.records, "geticon.main")
    assert len(records) == 1
    assert "winner without payload" in records[0].message


def test_metrics(
    client: TestClient, site: dict[str, bytes], report: Any, mocker: MockerFixture
) -> None:
    """Test that request timing and status metrics are reported."""
    client.get("/api/v1/img", params={"url": "example.com"})

    for metric in [
        "get.api.v1.img.timing",
        "get.api.v1.img.status_codes.200",
        "response.status_codes.200",
        "icons.request.timing",
    ]:
        report.assert_any_call(metric, mocker.ANY, mocker.ANY, mocker.ANY, mocker.ANY)

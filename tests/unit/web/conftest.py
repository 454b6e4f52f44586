# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Module for test configurations for the web unit test directory."""

from typing import Any, Iterator

import aiodogstatsd
import pytest
from fastapi.testclient import TestClient
from pytest_mock import MockerFixture

from geticon.icons import get_engine
from geticon.icons.cache import ResolutionCache
from geticon.icons.discovery import CandidateDiscovery
from geticon.icons.engine import IconEngine
from geticon.icons.fetcher import IconFetcher
from geticon.icons.resolver import IconResolver
from geticon.icons.scorer import IconScorer
from geticon.icons.validator import ContentValidator
from geticon.main import app
from tests.fakes import FakeWeb


@pytest.fixture(name="fake_web")
def fixture_fake_web() -> FakeWeb:
    """Return an empty fake web."""
    return FakeWeb()


@pytest.fixture(name="report", autouse=True)
def fixture_report(mocker: MockerFixture) -> Any:
    """Capture every metric the app reports instead of sending it."""
    return mocker.patch.object(aiodogstatsd.Client, "_report")


@pytest.fixture(name="engine")
def fixture_engine(mocker: MockerFixture, fake_web: FakeWeb) -> IconEngine:
    """Return an engine over the fake web."""
    metrics_client = mocker.MagicMock(spec=aiodogstatsd.Client)
    fetcher = IconFetcher(http_client=fake_web.client(), max_body_bytes=1_000_000)
    resolver = IconResolver(
        discovery=CandidateDiscovery(fetcher),
        fetcher=fetcher,
        validator=ContentValidator(),
        scorer=IconScorer(),
        batch_size=3,
        metrics_client=metrics_client,
    )
    return IconEngine(
        resolver=resolver,
        cache=ResolutionCache(ttl_sec=3600, max_entries=100, metrics_client=metrics_client),
    )


@pytest.fixture(name="client")
def fixture_client(engine: IconEngine) -> Iterator[TestClient]:
    """Return a FastAPI test client serving the fake web engine. This doesn't trigger events."""
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    del app.dependency_overrides[get_engine]

# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Module for test configurations for the icon engine tests."""

from typing import AsyncGenerator

import aiodogstatsd
import pytest
import pytest_asyncio
from pytest_mock import MockerFixture

from geticon.icons.cache import ResolutionCache
from geticon.icons.discovery import CandidateDiscovery
from geticon.icons.engine import IconEngine
from geticon.icons.fetcher import IconFetcher
from geticon.icons.resolver import IconResolver
from geticon.icons.scorer import IconScorer
from geticon.icons.validator import ContentValidator
from tests.fakes import FakeWeb

MAX_BODY_BYTES = 1_000_000


@pytest.fixture(name="fake_web")
def fixture_fake_web() -> FakeWeb:
    """Return an empty fake web."""
    return FakeWeb()


@pytest.fixture(name="statsd_mock")
def fixture_statsd_mock(mocker: MockerFixture):
    """Return mock for the StatsD client."""
    return mocker.MagicMock(spec=aiodogstatsd.Client)


@pytest_asyncio.fixture(name="fetcher")
async def fixture_fetcher(fake_web: FakeWeb) -> AsyncGenerator[IconFetcher, None]:
    """Return a fetcher that talks to the fake web."""
    client = fake_web.client()
    yield IconFetcher(http_client=client, max_body_bytes=MAX_BODY_BYTES)
    await client.aclose()


@pytest.fixture(name="resolver")
def fixture_resolver(fetcher: IconFetcher, statsd_mock) -> IconResolver:
    """Return a resolver over the fake web, fetching two candidates per batch."""
    return IconResolver(
        discovery=CandidateDiscovery(fetcher),
        fetcher=fetcher,
        validator=ContentValidator(),
        scorer=IconScorer(),
        batch_size=2,
        metrics_client=statsd_mock,
    )


@pytest.fixture(name="engine")
def fixture_engine(resolver: IconResolver, statsd_mock) -> IconEngine:
    """Return an engine over the fake web."""
    return IconEngine(
        resolver=resolver,
        cache=ResolutionCache(ttl_sec=3600, max_entries=100, metrics_client=statsd_mock),
    )

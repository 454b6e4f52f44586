# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Unit tests for the log_data_creators.py utility module."""

from datetime import datetime, timezone
from typing import Any

import pytest
from pydantic import ValidationError
from starlette.requests import Request
from starlette.types import Message

from geticon.utils.log_data_creators import (
    IconLookupLogDataModel,
    LogDataModel,
    RequestSummaryLogDataModel,
    create_icon_lookup_log_data,
    create_request_summary_log_data,
)

MESSAGE: Message = {
    "type": "http.response.start",
    "status": 200,
    "headers": [
        (b"content-length", b"1150"),
        (b"content-type", b"image/png"),
        (b"x-request-id", b"1b11844c52b34c33a6ad54b7bc2eb7c7"),
    ],
}


@pytest.mark.parametrize(
    ["query", "expected_site", "expected_size"],
    [
        (b"", None, None),
        (b"url=example.com", "example.com", None),
        (b"url=https%3A%2F%2Fexample.com%2F&size=64", "https://example.com/", "64"),
        (b"size=not-a-number&url=example.com", "example.com", "not-a-number"),
    ],
    ids=["no_query", "site", "site_and_size", "invalid_size"],
)
def test_create_icon_lookup_log_data(
    query: bytes, expected_site: str | None, expected_size: str | None
) -> None:
    """Test that icon lookup log data is built from the request and response."""
    request: Request = Request(
        scope={
            "type": "http",
            "headers": [],
            "method": "GET",
            "path": "/api/v1/img",
            "query_string": query,
        }
    )
    dt: datetime = datetime(1998, 3, 31)

    log_data = create_icon_lookup_log_data(request, MESSAGE, dt)

    assert log_data == IconLookupLogDataModel(
        errno=0,
        time=dt,
        path="/api/v1/img",
        method="GET",
        code=200,
        site=expected_site,
        size=expected_size,
        rid="1b11844c52b34c33a6ad54b7bc2eb7c7",
    )


def test_create_request_summary_log_data() -> None:
    """Test that request summary log data carries the agent, language and query."""
    request: Request = Request(
        scope={
            "type": "http",
            "headers": [
                (b"user-agent", b"Mozilla/5.0"),
                (b"accept-language", b"en-US"),
            ],
            "method": "GET",
            "path": "/__heartbeat__",
            "query_string": b"a=1&b=2",
        }
    )
    dt: datetime = datetime(1998, 3, 31)

    log_data = create_request_summary_log_data(request, MESSAGE, dt)

    assert log_data == RequestSummaryLogDataModel(
        errno=0,
        time=dt,
        path="/__heartbeat__",
        method="GET",
        code=200,
        agent="Mozilla/5.0",
        lang="en-US",
        querystring={"a": "1", "b": "2"},
    )


@pytest.mark.parametrize(
    "time_input",
    ["not a datetime string", {"not", "a", "datetime", "object"}],
    ids=["invalid_string", "invalid_object_type"],
)
def test_create_log_object_fails_on_invalid_time(time_input: Any) -> None:
    """Test that `time` fails validation on invalid time input."""
    with pytest.raises(ValidationError):
        LogDataModel(errno=0, time=time_input, path="/", method="GET", code=200)


def test_log_data_time_is_isoformat() -> None:
    """Ensure that `time` is dumped as an ISO format string."""
    log_data = LogDataModel(
        errno=0,
        time=datetime(2022, 12, 18, hour=15, minute=58, second=41, tzinfo=timezone.utc),
        path="/",
        method="GET",
        code=200,
    )

    assert log_data.model_dump().get("time") == "2022-12-18T15:58:41+00:00"

"""A utility module for log data creation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.types import Message


class LogDataModel(BaseModel):
    """Shared generic log data model. These fields are shared between the Request Summary Logs
    and the Icon Lookup Logs.
    """

    errno: int
    time: datetime
    path: str
    method: str
    code: int

    def model_dump(self, **kwargs) -> dict[str, Any]:
        """Convert the datetime type to an iso-formatted string."""
        d: dict[str, Any] = super().model_dump(**kwargs)
        if d.get("time"):
            d["time"] = d["time"].isoformat()
        return d


class RequestSummaryLogDataModel(LogDataModel):
    """Log metadata specific to Request Summary."""

    agent: Optional[str] = None
    lang: Optional[str] = None
    querystring: dict[str, Any]


class IconLookupLogDataModel(LogDataModel):
    """Log metadata specific to icon lookups."""

    site: Optional[str] = None
    size: Optional[str] = None
    rid: Optional[str] = None  # Provided by the asgi-correlation-id middleware.


def create_request_summary_log_data(
    request: Request, message: Message, dt: datetime
) -> RequestSummaryLogDataModel:
    """Create log data for API endpoints."""
    return RequestSummaryLogDataModel(
        errno=0,
        time=dt,
        agent=request.headers.get("User-Agent"),
        path=request.url.path,
        method=request.method,
        lang=request.headers.get("Accept-Language"),
        querystring=dict(request.query_params),
        code=message["status"],
    )


def create_icon_lookup_log_data(
    request: Request, message: Message, dt: datetime
) -> IconLookupLogDataModel:
    """Create log data for the icon lookup endpoints."""
    headers = Headers(scope=message)
    return IconLookupLogDataModel(
        errno=0,
        time=dt,
        path=request.url.path,
        method=request.method,
        code=message["status"],
        site=request.query_params.get("url"),
        size=request.query_params.get("size"),
        rid=headers.get("X-Request-ID"),
    )

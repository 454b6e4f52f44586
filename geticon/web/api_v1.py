"""GetIcon V1 API"""

import logging
from typing import Annotated, Optional

from aiodogstatsd import Client
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import ORJSONResponse
from starlette.requests import Request
from starlette.responses import Response

from geticon.configs import settings
from geticon.exceptions import InternalInconsistency, InvalidURL
from geticon.icons import get_engine
from geticon.icons.engine import IconEngine
from geticon.icons.fetcher import filter_forwarded_headers
from geticon.icons.models import ResolutionResult
from geticon.icons.resolver import content_hash
from geticon.middleware import ScopeKey
from geticon.utils.api.cache_control import cache_control_header, etag_matches, quote_etag
from geticon.web.models_v1 import IconResponse

logger = logging.getLogger(__name__)
router = APIRouter()

URL_CHARACTER_MAX = settings.web.api.v1.url_character_max
SIZE_MAX = settings.web.api.v1.size_max

SiteParam = Annotated[
    str, Query(min_length=1, max_length=URL_CHARACTER_MAX, description="Site to look up")
]
SizeParam = Annotated[
    Optional[int], Query(gt=0, le=SIZE_MAX, description="Preferred icon edge in pixels")
]
IfNoneMatch = Annotated[Optional[str], Header()]


async def resolve_icon(
    request: Request, engine: IconEngine, url: str, size: Optional[int]
) -> ResolutionResult:
    """Resolve `url` and turn user and lookup failures into HTTP errors."""
    metrics_client: Client = request.scope[ScopeKey.METRICS_CLIENT]
    try:
        with metrics_client.timeit("icons.request.timing"):
            result = await engine.resolve(url, size, filter_forwarded_headers(request.headers))
    except InvalidURL as exc:
        logger.info(f"HTTP 400: {exc}", extra={"reason": exc.reason})
        raise HTTPException(status_code=400, detail=str(exc))

    if not result.found:
        raise HTTPException(status_code=404, detail=f"No usable icon found for {result.site.url}")
    return result


@router.get(
    "/img",
    tags=["icons"],
    summary="Best icon image for a site",
    response_class=Response,
    responses={
        200: {"content": {"image/*": {}}, "description": "The icon payload."},
        304: {"description": "The client's cached copy is current."},
        400: {"description": "The site or size is invalid."},
        404: {"description": "The site exposes no usable icon."},
    },
)
async def img(
    request: Request,
    url: SiteParam,
    size: SizeParam = None,
    if_none_match: IfNoneMatch = None,
    engine: IconEngine = Depends(get_engine),
) -> Response:
    """Return the raw bytes of the best icon for `url`.

    The `ETag` is the hash of the payload, so repeated lookups within the cache
    TTL can be revalidated with `If-None-Match`.
    """
    result = await resolve_icon(request, engine, url, size)
    best = result.best
    etag = result.etag
    if best is None or etag is None:
        raise InternalInconsistency(f"Found result for {result.site.url} has no payload or ETag")

    headers = {"ETag": etag, "Cache-Control": cache_control_header()}
    if etag_matches(if_none_match, etag):
        return Response(status_code=304, headers=headers)

    return Response(content=best.icon.content, media_type=best.icon.content_type, headers=headers)


@router.get(
    "/json",
    tags=["icons"],
    summary="Icons discovered for a site",
    response_model=IconResponse,
    responses={
        304: {"description": "The client's cached copy is current."},
        400: {"description": "The site or size is invalid."},
        404: {"description": "The site exposes no usable icon."},
    },
)
async def icons_json(
    request: Request,
    url: SiteParam,
    size: SizeParam = None,
    if_none_match: IfNoneMatch = None,
    engine: IconEngine = Depends(get_engine),
) -> Response:
    """Return metadata for the validated icons of `url` and the one chosen as best."""
    result = await resolve_icon(request, engine, url, size)

    response = ORJSONResponse(
        content=jsonable_encoder(IconResponse.from_result(result)),
        headers={"Cache-Control": cache_control_header()},
    )
    etag = quote_etag(content_hash(response.body))
    if etag_matches(if_none_match, etag):
        return Response(
            status_code=304, headers={"ETag": etag, "Cache-Control": cache_control_header()}
        )

    response.headers["ETag"] = etag
    return response

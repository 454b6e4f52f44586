"""Dockerflow and health Endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse, Response

from geticon.icons import get_engine
from geticon.icons.engine import IconEngine
from geticon.web.models_v1 import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
async def redirect_home_to_docs():
    """Redirects home endpoint to the interactive documentation provided by FastAPI."""
    response = RedirectResponse(url="/docs")
    return response


@router.get("/__heartbeat__", tags=["__heartbeat__"], summary="Dockerflow: __heartbeat__")
async def heartbeat() -> Response:
    """Dockerflow: Query service heartbeat. It returns an empty string in the response."""
    return Response(content="")


@router.get(
    "/__lbheartbeat__", tags=["__lbheartbeat__"], summary="Dockerflow: __lbheartbeat__"
)
async def lbheartbeat() -> Response:
    """Dockerflow: Query service heartbeat for load balancer. It returns an empty string in the
    response.
    """
    return Response(content="")


@router.get("/health", tags=["health"], summary="Service health and cache statistics")
async def health(engine: IconEngine = Depends(get_engine)) -> HealthResponse:
    """Report that the service is up along with the resolution cache statistics."""
    return HealthResponse(status="ok", service="geticon", cache=engine.cache.stats())

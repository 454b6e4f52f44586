"""GetIcon application"""

import logging
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from geticon import icons
from geticon.configs.app_configs.config_logging import configure_logging
from geticon.configs.app_configs.config_sentry import configure_sentry
from geticon.exceptions import InternalInconsistency
from geticon.metrics import configure_metrics, shutdown_metrics
from geticon.middleware.logging import LoggingMiddleware
from geticon.middleware.metrics import MetricsMiddleware
from geticon.web import api_v1, dockerflow

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "icons",
        "description": "Look up the best icon a website exposes, as an image or as metadata.",
    },
    {
        "name": "health",
        "description": "Service status and resolution cache statistics.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure observability and build the icon engine before serving, and release the
    outbound connection pool and metrics client afterwards.
    """
    configure_logging()
    configure_sentry()
    await configure_metrics()
    icons.init_engine()
    yield
    await icons.shutdown_engine()
    await shutdown_metrics()


app = FastAPI(
    title="GetIcon",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Answer malformed query parameters with 400 instead of FastAPI's default 422."""
    logger.info(f"HTTP 400: invalid parameters for {request.url.path}")
    return ORJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"detail": exc.errors()}),
    )


@app.exception_handler(InternalInconsistency)
async def internal_inconsistency_handler(
    request: Request, exc: InternalInconsistency
) -> ORJSONResponse:
    """Answer with 500 and report the contradiction to Sentry through the error log."""
    logger.error(f"HTTP 500: {exc} ({request.url.path})", exc_info=exc)
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


# Middleware added last runs first. `LoggingMiddleware` must wrap
# `CorrelationIdMiddleware` to see the request ID it sets on responses.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "HEAD", "OPTIONS"],
    expose_headers=["ETag", "X-Request-ID"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(LoggingMiddleware)

app.include_router(dockerflow.router)
app.include_router(api_v1.router, prefix="/api/v1")


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, proxy_headers=True)

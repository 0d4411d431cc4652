"""
perfcapture HTTP service.

Exposes capture runs against the configured monitoring endpoint, the
counter catalog and health. Every request is tagged with an
``X-Request-ID`` that is bound into the structlog context for the
capture's log lines.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from perfcapture import __version__
from perfcapture.config import get_settings
from perfcapture.routers import capture, system
from perfcapture.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    catalog = capture.get_capture_service().catalog

    logger.info(
        "perfcapture_started",
        version=app.version,
        monitoring_endpoint_configured=settings.has_default_endpoint,
        derived_counters=len(catalog),
        raw_metrics=len(catalog.all_raw_names()),
    )
    yield
    logger.info("perfcapture_stopped")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="perfcapture API",
        description="Realtime performance capture from a cloud monitoring API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness check."""
        return {"status": "healthy", "version": app.version}

    app.include_router(capture.router, prefix="/api/v1/capture", tags=["Capture"])
    app.include_router(system.router, prefix="/api/v1/system", tags=["System"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "perfcapture.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )

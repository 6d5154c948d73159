"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ingest_queue import __version__
from ingest_queue.api.routes import (
    dead_letter_router,
    events_router,
    health_router,
    jobs_router,
    queue_router,
    tenants_router,
)
from ingest_queue.config import get_settings
from ingest_queue.db import close_db, get_engine, init_db
from ingest_queue.errors import (
    BatchIncompleteError,
    EnvelopeValidationError,
    StoreUnavailableError,
)
from ingest_queue.observability.logging import setup_logging
from ingest_queue.observability.metrics import setup_metrics
from ingest_queue.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)
from ingest_queue.types.api import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    setup_metrics()
    setup_tracing()
    await init_db()
    if get_settings().tracing_enabled:
        instrument_sqlalchemy(get_engine().sync_engine)

    logger.info("Application started")

    yield

    # Shutdown
    await close_db()
    logger.info("Application shutdown")


async def envelope_validation_handler(request: Request, exc: EnvelopeValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(error=str(exc), detail=exc.errors).model_dump(),
    )


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.warning("Request failed, queue store unavailable", extra={"error": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=ErrorResponse(error="store_unavailable", detail=str(exc)).model_dump(),
    )


async def batch_incomplete_handler(request: Request, exc: BatchIncompleteError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="batch_incomplete",
            detail=str(exc),
            result=exc.result.model_dump(),
        ).model_dump(),
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Ingestion Queue API",
        description="Website event ingestion queue with retries and dead-lettering",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(EnvelopeValidationError, envelope_validation_handler)
    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)
    app.add_exception_handler(BatchIncompleteError, batch_incomplete_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(events_router)
    app.include_router(queue_router)
    app.include_router(dead_letter_router)
    app.include_router(jobs_router)
    app.include_router(tenants_router)

    if settings.tracing_enabled:
        instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    run()

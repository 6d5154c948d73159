"""
Health check routes.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, Response

from ingest_queue import __version__
from ingest_queue.clock import utcnow
from ingest_queue.observability.metrics import get_metrics
from ingest_queue.queue.reporting import check_readiness
from ingest_queue.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and the queue store.",
)
async def health_check() -> HealthResponse:
    """
    Perform a health check.

    Returns:
        HealthResponse; status is "degraded" when the queue store is unreachable.
    """
    readiness = await check_readiness()

    return HealthResponse(
        status="healthy" if readiness.ready else "degraded",
        version=__version__,
        database="healthy" if readiness.ready else "unhealthy",
        message=readiness.message,
        timestamp=utcnow(),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service can enqueue and dispatch events.",
)
async def readiness_check() -> JSONResponse:
    """
    Kubernetes readiness probe endpoint.

    Returns:
        200 with {"ready": true}, or 503 when the queue store is unavailable.
    """
    readiness = await check_readiness()
    return JSONResponse(
        status_code=status.HTTP_200_OK if readiness.ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=readiness.model_dump(),
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Alive status.
    """
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )

"""Health check endpoints for monitoring the send worker."""

from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

ROUTER_HEALTH = APIRouter(tags=["Health"])

SERVICE_NAME = "Notification Send Worker"


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2026-01-05T12:00:00.000000Z",
                        "service": SERVICE_NAME,
                        "version": "v1",
                        "send_worker_enabled": True,
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Returns application status and metadata. Does not touch the database or queue.
    """
    settings = request.app.state.settings

    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": "v1",
        "send_worker_enabled": settings.enable_send_worker,
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response_data,
    )


@ROUTER_HEALTH.get(
    "/health/live",
    summary="Liveness probe",
    description="Reports whether the send queue consumer task is still running",
)
async def liveness(request: Request):
    """Liveness probe: 503 when the consumer task was started and has since stopped."""
    task = getattr(request.app.state, "queue_consumer_task", None)
    consumer_running = task is not None and not task.done()

    if task is not None and not consumer_running:
        logger.warning("Send queue consumer task is not running")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "consumer_running": False},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "alive", "consumer_running": consumer_running},
    )


@ROUTER_HEALTH.get(
    "/health/ready",
    summary="Readiness probe",
    description="Checks the notification database and reports the send queue depth",
)
async def readiness(request: Request):
    """
    Readiness probe.

    Returns 503 when the database pool is missing or fails its health check.
    The queue length is informational.
    """
    db_pool = getattr(request.app.state, "db_pool", None)
    queue_client = getattr(request.app.state, "queue_client", None)

    database_ok = bool(db_pool) and await db_pool.health_check()
    queue_length = await queue_client.get_queue_length() if queue_client else None

    response_data = {
        "status": "ready" if database_ok else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "ok" if database_ok else "unavailable",
        "queue_length": queue_length,
    }

    if not database_ok:
        logger.warning("Readiness check failed", database=response_data["database"])
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response_data)

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)

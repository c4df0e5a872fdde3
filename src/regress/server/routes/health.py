"""Health check routes."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict[str, str | float]:
    """Health check endpoint.

    Returns:
        Health status with the suite uptime in seconds.
    """
    aggregator = request.app.state.metrics
    return {"status": "healthy", "uptime": aggregator.suite_elapsed_seconds()}


@router.get("/ready")
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {"status": "ready"}

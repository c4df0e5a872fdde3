"""Metrics exposition routes."""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    """Prometheus text exposition of every registered sample."""
    aggregator = request.app.state.metrics
    try:
        body = aggregator.exposition()
    except Exception as e:
        logger.error("metrics_exposition_failed", extra={"error.message": str(e)})
        return Response(content=str(e), status_code=500)
    return Response(content=body, media_type=aggregator.content_type)


@router.get("/test-summary")
async def test_summary(request: Request) -> JSONResponse:
    """JSON reduction of the suite's samples."""
    aggregator = request.app.state.metrics
    try:
        summary = aggregator.get_test_summary()
    except Exception as e:
        logger.error("metrics_summary_failed", extra={"error.message": str(e)})
        return JSONResponse({"error": str(e)}, status_code=500)
    return JSONResponse(summary.to_dict())

"""FastAPI application exposing suite metrics."""

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from regress.server.routes import health, metrics

if TYPE_CHECKING:
    from regress.metrics.aggregator import MetricsAggregator

logger = logging.getLogger(__name__)


def create_app(aggregator: "MetricsAggregator") -> FastAPI:
    """Create the metrics app bound to one aggregator."""
    app = FastAPI(
        title="regress",
        description="Regression suite metrics",
        version="0.1.0",
    )
    app.state.metrics = aggregator
    app.include_router(health.router)
    app.include_router(metrics.router)
    return app

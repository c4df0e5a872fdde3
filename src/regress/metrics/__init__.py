"""Suite metrics aggregation and reporting."""

from regress.metrics.aggregator import (
    MetricsAggregator,
    TestSummary,
    coerce_duration,
    create_metrics_aggregator,
)

__all__ = [
    "MetricsAggregator",
    "TestSummary",
    "coerce_duration",
    "create_metrics_aggregator",
]

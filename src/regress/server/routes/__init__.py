"""HTTP routes for the metrics server."""

from regress.server.routes import health, metrics

__all__ = ["health", "metrics"]

"""HTTP exposition for suite metrics."""

from regress.server.app import create_app
from regress.server.runner import MetricsServer

__all__ = [
    "MetricsServer",
    "create_app",
]

"""CLI command modules."""

from regress.cli.commands import config, report, screenshots, serve

__all__ = [
    "config",
    "report",
    "screenshots",
    "serve",
]

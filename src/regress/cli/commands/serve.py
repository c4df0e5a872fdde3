"""Standalone metrics server command."""

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

if TYPE_CHECKING:
    from regress.config.models import RegressConfig

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve-metrics command."""

    @app.command("serve-metrics")
    def serve_metrics(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        host: Annotated[
            str | None,
            typer.Option(
                "--host",
                "-h",
                help="Host to bind to (default: from config)",
            ),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option(
                "--port",
                "-p",
                help="Port to bind to (default: from config)",
            ),
        ] = None,
    ) -> None:
        """Serve an initialized, empty aggregator for smoke checks."""
        from regress.cli.console import load_config_or_exit
        from regress.logging import configure_logging

        config_obj = load_config_or_exit(config)
        configure_logging(use_rich=True)
        try:
            asyncio.run(
                _serve(
                    config_obj,
                    host or config_obj.metrics.host,
                    port or config_obj.metrics.port,
                )
            )
        except KeyboardInterrupt:
            print("\nServer stopped")


async def _serve(config: "RegressConfig", host: str, port: int) -> None:
    from regress.metrics import create_metrics_aggregator
    from regress.server import MetricsServer, create_app

    aggregator = create_metrics_aggregator(config)
    aggregator.initialize()
    logger.info(
        "metrics_server_starting",
        extra={"server.host": host, "server.port": port},
    )
    await MetricsServer(create_app(aggregator), host=host, port=port).serve_forever()

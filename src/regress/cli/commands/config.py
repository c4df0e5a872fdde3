"""Configuration inspection commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from regress.cli.console import (
    console,
    create_table,
    dim,
    error,
    success,
    warning,
)


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: ./regress.toml)",
            ),
        ] = None,
    ) -> None:
        """Inspect configuration."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from rich.syntax import Syntax

        from regress.cli.console import load_config_or_exit
        from regress.config.loader import find_config_path

        if action == "show":
            expanded_path = path.expanduser() if path else find_config_path()
            if expanded_path is None:
                dim("No config file found; effective defaults:")
                console.print_json(load_config_or_exit(None).model_dump_json())
                return
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            content = expanded_path.read_text()
            syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
            console.print(f"[bold]Config file: {expanded_path}[/bold]\n")
            console.print(syntax)

        elif action == "validate":
            config_obj = load_config_or_exit(path)

            table = create_table(
                "Configuration Summary",
                [("Setting", "cyan"), ("Value", "green")],
            )
            browser = config_obj.browser
            engine = browser.engine or "[red]unsupported[/red]"
            table.add_row("Browser", f"{browser.kind} ({engine})")
            table.add_row("Headless", str(browser.headless))
            table.add_row(
                "Timeouts",
                f"page {browser.page_timeout_ms}ms, "
                f"implicit {browser.implicit_wait_ms}ms",
            )
            acquisition = config_obj.acquisition
            table.add_row(
                "Acquisition",
                f"{acquisition.max_attempts} attempts, "
                f"{acquisition.retry_delay_seconds:g}s delay, "
                f"{acquisition.timeout_seconds:g}s bound",
            )
            table.add_row("Artifacts", str(config_obj.paths.artifacts_dir))
            table.add_row("Report", str(config_obj.report_path))
            table.add_row("Environment", config_obj.run.environment)
            table.add_row(
                "Metrics server",
                f"{config_obj.metrics.host}:{config_obj.metrics.port}"
                if config_obj.metrics.server_enabled
                else "[dim]disabled[/dim]",
            )

            if browser.engine is None:
                error(f"Unsupported browser: {browser.kind}")
                console.print(table)
                raise typer.Exit(1)

            if config_obj.run.ci and not browser.headless:
                warning("CI is set but the browser is not headless")
            success("Configuration is valid!")
            console.print()
            console.print(table)

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)

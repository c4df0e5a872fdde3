"""Metrics report commands."""

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from regress.cli.console import console, create_table, error

REPORT_ROWS: tuple[tuple[str, str], ...] = (
    ("Environment", "environment"),
    ("Build", "buildNumber"),
    ("Branch", "gitBranch"),
    ("Total tests", "totalTests"),
    ("Passed", "passedTests"),
    ("Failed", "failedTests"),
    ("Errors", "totalErrors"),
    ("Screenshots", "screenshots"),
    ("Browser actions", "browserActions"),
)


def _format_rate(report: dict[str, Any]) -> str:
    rate = float(report.get("successRate", 0))
    style = "green" if rate >= 100 else "yellow" if rate >= 75 else "red"
    return f"[{style}]{rate:.2f}%[/{style}]"


def register(app: typer.Typer) -> None:
    """Register the report command group."""
    report_app = typer.Typer(
        name="report",
        help="Inspect metrics reports",
        no_args_is_help=True,
    )

    @report_app.command("show")
    def show(
        path: Annotated[
            Path | None,
            typer.Option("--path", "-p", help="Report file (default: from config)"),
        ] = None,
        config: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Pretty-print the last metrics report."""
        if path is None:
            from regress.cli.console import load_config_or_exit

            path = load_config_or_exit(config).report_path

        if not path.exists():
            error(f"Report not found: {path}")
            raise typer.Exit(1)
        try:
            report = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            error(f"Could not read report {path}: {e}")
            raise typer.Exit(1) from None

        table = create_table(
            f"Metrics report ({report.get('timestamp', 'unknown time')})",
            [("Field", "cyan"), ("Value", {"justify": "right"})],
        )
        for label, key in REPORT_ROWS:
            table.add_row(label, str(report.get(key, "-")))
        table.add_row("Success rate", _format_rate(report))
        if "suiteDuration" in report:
            table.add_row("Suite duration", f"{report['suiteDuration']}s")
        console.print(table)

    app.add_typer(report_app)

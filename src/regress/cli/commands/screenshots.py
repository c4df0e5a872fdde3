"""Screenshot artifact housekeeping commands."""

from pathlib import Path
from typing import Annotated

import typer

from regress.cli.console import console, create_table, dim, success

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to configuration file"),
]


def register(app: typer.Typer) -> None:
    """Register the screenshots command group."""
    screenshots_app = typer.Typer(
        name="screenshots",
        help="Manage diagnostic screenshots",
        no_args_is_help=True,
    )

    @screenshots_app.command("clean")
    def clean(
        max_age_days: Annotated[
            float,
            typer.Option(
                "--max-age-days",
                "-d",
                min=0,
                help="Delete screenshots older than this many days",
            ),
        ] = 7,
        config: ConfigOption = None,
    ) -> None:
        """Delete old screenshots."""
        from regress.cli.console import load_config_or_exit
        from regress.diagnostics import create_diagnostic_capture

        capture = create_diagnostic_capture(load_config_or_exit(config))
        deleted = capture.cleanup_old_screenshots(max_age_days)
        if deleted:
            success(f"Deleted {deleted} screenshot(s) older than {max_age_days:g} days")
        else:
            dim("No screenshots to delete")

    @screenshots_app.command("stats")
    def stats(config: ConfigOption = None) -> None:
        """Show screenshot count and disk usage."""
        from regress.cli.console import load_config_or_exit
        from regress.diagnostics import create_diagnostic_capture

        capture = create_diagnostic_capture(load_config_or_exit(config))
        result = capture.get_screenshot_stats()

        table = create_table(
            "Screenshots",
            [("Metric", "cyan"), ("Value", {"style": "green", "justify": "right"})],
        )
        table.add_row("Directory", str(result.directory))
        table.add_row("Count", str(result.count))
        table.add_row("Total size", f"{result.total_size_mb:.2f} MB")
        console.print(table)

    app.add_typer(screenshots_app)

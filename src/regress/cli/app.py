"""Main CLI application."""

import typer

from regress.cli.commands import config, report, screenshots, serve

app = typer.Typer(
    name="regress",
    help="regress - browser session lifecycle for acceptance suites",
    no_args_is_help=True,
)

config.register(app)
screenshots.register(app)
report.register(app)
serve.register(app)


if __name__ == "__main__":
    app()

"""Main CLI application for Roblox Username Checker."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from roblox_username_checker import __version__
from roblox_username_checker.cli import check as check_cmd
from roblox_username_checker.config import get_settings
from roblox_username_checker.logging import setup_logging

app = typer.Typer(
    name="rbxcheck",
    help="Check Roblox username availability, one at a time or in bulk.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"rbxcheck version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """Roblox Username Checker - find available usernames without tripping rate limits."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


app.command("check")(check_cmd.check_username)
app.command("bulk")(check_cmd.bulk_check)


if __name__ == "__main__":
    app()

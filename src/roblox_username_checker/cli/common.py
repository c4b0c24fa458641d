"""Common CLI option factories and helpers.

This module centralizes reusable CLI options and provides
`run_async_command` for unified async execution with error handling.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from roblox_username_checker.schemas import OutcomeKind, OutputFormat, SchedulingStrategy

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")

OUTCOME_STYLES: dict[OutcomeKind, str] = {
    OutcomeKind.AVAILABLE: "green",
    OutcomeKind.TAKEN: "red",
    OutcomeKind.FILTERED: "magenta",
    OutcomeKind.RATE_LIMITED: "yellow",
    OutcomeKind.TRANSIENT_ERROR: "bright_black",
}


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


def style_outcome(kind: OutcomeKind) -> str:
    """Render an outcome kind with its color."""
    style = OUTCOME_STYLES.get(kind, "white")
    return f"[{style}]{kind.value}[/{style}]"


def read_usernames(source: str) -> list[str]:
    """Read one username per line from a file, or stdin when ``source`` is "-".

    Blank lines are dropped and surrounding whitespace trimmed.

    Raises:
        typer.Exit(1): If the file cannot be read
    """
    if source == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(source).read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Error:[/red] Cannot read {source}: {e.strerror or e}")
            raise typer.Exit(1) from None
    return [line.strip() for line in text.splitlines() if line.strip()]


OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

StrategyOption = Annotated[
    SchedulingStrategy | None,
    typer.Option(
        "--strategy",
        "-s",
        help="Pacing strategy (defaults to PACING__STRATEGY or adaptive)",
    ),
]
"""Scheduling strategy override option.

Usage:
    def bulk(strategy: StrategyOption = None):
"""

ExportOption = Annotated[
    Path | None,
    typer.Option(
        "--export",
        "-e",
        help="Write available usernames to this file, one per line",
        dir_okay=False,
        writable=True,
    ),
]
"""Optional export path for available usernames."""

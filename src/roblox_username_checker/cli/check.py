"""Username check commands."""

from __future__ import annotations

import asyncio
import json
import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import typer
from pydantic import ValidationError
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from roblox_username_checker.cli.common import (
    ExportOption,
    OutputFormatOption,
    StrategyOption,
    console,
    read_usernames,
    run_async_command,
    style_outcome,
)
from roblox_username_checker.config import PacingConfig, get_settings
from roblox_username_checker.roblox import (
    BatchResult,
    BulkScheduler,
    ProgressTracker,
    ProgressUpdate,
    RobloxValidatorClient,
)
from roblox_username_checker.roblox.pacing import unique_usernames
from roblox_username_checker.schemas import CheckOutcome, OutcomeKind, OutputFormat


def check_username(
    username: str = typer.Argument(..., help="Username to check"),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Check whether a single username is available.

    Examples:
        rbxcheck check builderman
        rbxcheck check builderman --format json
        rbxcheck -v check builderman  # Debug logging
    """
    name = username.strip()
    if not name:
        console.print("[red]Error:[/red] Username must not be empty")
        raise typer.Exit(1)

    async def _check() -> CheckOutcome:
        async with RobloxValidatorClient(get_settings().validator) as client:
            return await client.check(name)

    outcome = run_async_command(_check(), error_prefix="Check failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(outcome.to_dict()))
    else:
        detail = f" [dim]({outcome.message})[/dim]" if outcome.message else ""
        console.print(f"[bold]{name}[/bold]: {style_outcome(outcome.kind)}{detail}")

    if not outcome.is_success:
        raise typer.Exit(1)


def bulk_check(
    source: str = typer.Argument(
        "-",
        help="File with one username per line, or - to read stdin",
    ),
    strategy: StrategyOption = None,
    concurrency: int | None = typer.Option(
        None,
        "--concurrency",
        "-c",
        help="Initial concurrency for the adaptive strategy",
    ),
    export: ExportOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Check many usernames with adaptive rate limit pacing.

    Duplicates are checked once. Rate limited usernames are retried after a
    cooldown; other errors are reported and not retried.

    Examples:
        rbxcheck bulk names.txt
        cat names.txt | rbxcheck bulk -
        rbxcheck bulk names.txt --strategy fixed_batch
        rbxcheck bulk names.txt --export available.txt --format json
    """
    usernames = read_usernames(source)
    if not usernames:
        console.print("[yellow]No usernames to check.[/yellow]")
        raise typer.Exit(1)

    settings = get_settings()
    pacing = settings.pacing
    if concurrency is not None:
        try:
            pacing = PacingConfig.model_validate(
                {
                    **pacing.model_dump(),
                    "initial_concurrency": concurrency,
                    "min_concurrency": min(pacing.min_concurrency, concurrency),
                    "max_concurrency": max(pacing.max_concurrency, concurrency),
                }
            )
        except ValidationError as e:
            console.print(f"[red]Error:[/red] Invalid concurrency: {e.errors()[0]['msg']}")
            raise typer.Exit(1) from None

    total = len(unique_usernames(usernames))
    show_progress = output_format == OutputFormat.TEXT

    async def _bulk() -> BatchResult:
        tracker = ProgressTracker(total=total, name="bulk check")
        abort = asyncio.Event()
        async with (
            _abort_on_interrupt(abort, announce=show_progress),
            RobloxValidatorClient(settings.validator) as client,
        ):
            scheduler = BulkScheduler(client, pacing, strategy=strategy, progress=tracker)
            if not show_progress:
                return await scheduler.run(usernames, abort=abort)

            with Progress(
                TextColumn("[bold]Checking[/bold]"),
                BarColumn(bar_width=40),
                TaskProgressColumn(),
                TextColumn("{task.completed}/{task.total}"),
                TextColumn("[cyan]{task.fields[speed]}[/cyan]"),
                TextColumn("{task.fields[pacing]}"),
                TimeElapsedColumn(),
                console=console,
                transient=True,
            ) as bar:
                task = bar.add_task("", total=total, speed="0.0/s", pacing="")

                def _render(update: ProgressUpdate) -> None:
                    if update.is_cooling_down:
                        pacing_text = f"[yellow]cooldown {update.cooldown_remaining:.1f}s[/yellow]"
                    else:
                        pacing_text = f"[dim]x{update.concurrency}[/dim]"
                    bar.update(
                        task,
                        completed=update.processed,
                        speed=f"{update.throughput:.1f}/s",
                        pacing=pacing_text,
                    )

                tracker.on_progress(_render)
                scheduler.on_cooldown(
                    lambda seconds: bar.console.print(
                        f"[yellow]Rate limited[/yellow], slowing down for {seconds:.1f}s"
                    )
                )
                return await scheduler.run(usernames, abort=abort)

    result = run_async_command(_bulk(), error_prefix="Bulk check failed")

    exported: int | None = None
    if export is not None:
        exported = result.write_available(export)

    if output_format == OutputFormat.JSON:
        data = result.to_dict()
        if export is not None:
            data["exported_to"] = str(export)
        console.print_json(json.dumps(data))
        return

    _print_summary(result)
    if exported is not None:
        console.print(f"\n[green]Exported {exported} available username(s) to {export}[/green]")


@asynccontextmanager
async def _abort_on_interrupt(abort: asyncio.Event, *, announce: bool) -> AsyncIterator[None]:
    """Turn the first Ctrl-C into a cooperative abort of the running batch.

    Checks already in flight finish, so the partial summary and export
    still get written. A second Ctrl-C interrupts as usual.
    """
    loop = asyncio.get_running_loop()

    def _interrupt() -> None:
        loop.remove_signal_handler(signal.SIGINT)
        if announce:
            console.print(
                "[yellow]Interrupted[/yellow], finishing in-flight checks (Ctrl-C again to quit)"
            )
        abort.set()

    try:
        loop.add_signal_handler(signal.SIGINT, _interrupt)
    except (NotImplementedError, RuntimeError):
        # No loop signal support (Windows, or not the main thread)
        installed = False
    else:
        installed = True

    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _print_summary(result: BatchResult) -> None:
    """Print the text summary of a finished batch."""
    title = "Bulk Check Aborted" if result.aborted else "Bulk Check Complete"
    console.print(f"[bold]{title}[/bold]")
    console.print()

    counts = result.counts
    console.print(f"  [green]Available:[/green]  {counts[OutcomeKind.AVAILABLE]}")
    console.print(f"  [red]Taken:[/red]      {counts[OutcomeKind.TAKEN]}")
    console.print(f"  [magenta]Filtered:[/magenta]   {counts[OutcomeKind.FILTERED]}")
    if counts[OutcomeKind.TRANSIENT_ERROR]:
        console.print(f"  [dim]Errors:[/dim]     {counts[OutcomeKind.TRANSIENT_ERROR]}")

    console.print()
    console.print(f"  Checked: {result.checked_count}/{result.total_count}")
    console.print(f"  Duration: {result.duration_seconds:.1f}s ({result.throughput:.2f}/s)")
    console.print(f"  Rate limit events: {result.rate_limit_events}")
    average = result.average_response_ms
    if average is not None:
        console.print(f"  Avg response: {average:.0f}ms")

    available = result.by_kind(OutcomeKind.AVAILABLE)
    if available:
        console.print()
        table = Table(title="Available Usernames")
        table.add_column("Username", style="green")
        table.add_column("Message")
        for outcome in available:
            table.add_row(outcome.username, outcome.message or "")
        console.print(table)

    errors = result.by_kind(OutcomeKind.TRANSIENT_ERROR)
    if errors:
        console.print()
        console.print("[bold]Errors:[/bold]")
        for outcome in errors:
            console.print(f"  {outcome.username}: {outcome.message or 'Unknown error'}")

    if result.unchecked:
        console.print()
        console.print(f"[yellow]{len(result.unchecked)} username(s) were not checked.[/yellow]")

"""Job commands: create, resolve, run (scheduler in the foreground)."""

from __future__ import annotations

import signal
import threading

import typer

from automarkets.jobs import run_creation_job, run_resolution_job
from automarkets.models import MarketType


def create(
    ctx: typer.Context,
    market_type: MarketType | None = typer.Option(
        None, "--type", "-t", help="Force an archetype instead of following the rotation"
    ),
    test_mode: bool = typer.Option(False, "--test-mode", help="Expire the new market in 5 minutes"),
) -> None:
    """Run one creation cycle now (ignores the automation enable flag)."""
    settings = ctx.obj["settings"]
    result = run_creation_job(
        settings,
        manual=True,
        forced_type=market_type,
        test_mode=True if test_mode else None,
    )
    if not result.success:
        typer.echo(f"Creation failed: {result.error}", err=True)
        raise typer.Exit(1)
    if result.market_created:
        typer.echo(f"Created market {result.market_id} ({result.market_type.value}).")
    else:
        typer.echo(f"No market created: {result.reason}")


def resolve(ctx: typer.Context) -> None:
    """Run one resolution check over all pending markets."""
    settings = ctx.obj["settings"]
    report = run_resolution_job(settings)
    if report.skipped:
        typer.echo(f"Skipped: {report.skipped}")
        return
    typer.echo(f"Checked {report.checked}, resolved {report.resolved}, refunded {report.refunded}.")
    for err in report.errors:
        typer.echo(f"  error: {err}", err=True)
    if report.errors:
        raise typer.Exit(1)


def run_scheduler(ctx: typer.Context) -> None:
    """Run creation and resolution on their intervals until Ctrl+C."""
    from automarkets.scheduler import AutomationScheduler

    settings = ctx.obj["settings"]
    scheduler = AutomationScheduler(settings)
    stop_event = threading.Event()

    def shutdown(*_: object) -> None:
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)
    scheduler.start()
    typer.echo(
        f"Scheduler running: creation every {settings.creation_interval_min} min, "
        f"resolution every {settings.resolution_interval_min} min (Ctrl+C to stop)..."
    )
    try:
        stop_event.wait()
    finally:
        scheduler.stop()
    typer.echo("Stopped.")

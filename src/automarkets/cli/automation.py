"""Automation subcommand: status, enable, disable, logs."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from automarkets.storage.automation import (
    get_automation_config,
    recent_automation_logs,
    set_automation_enabled,
)
from automarkets.storage.db import get_connection, init_schema

app = typer.Typer(help="Global automation flag and execution log")


def _fmt_ms(ts: int | None) -> str:
    if ts is None:
        return "never"
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


@app.command("status")
def status(ctx: typer.Context) -> None:
    """Show whether scheduled creation is enabled and when it last created a market."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        config = get_automation_config(conn)
        typer.echo(f"Automation: {'enabled' if config.enabled else 'disabled'}")
        typer.echo(f"Last run: {_fmt_ms(config.last_run)}")
        typer.echo(f"Test mode: {settings.test_mode}")
    finally:
        conn.close()


def _set(ctx: typer.Context, enabled: bool) -> None:
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        config = set_automation_enabled(conn, enabled)
        typer.echo(f"Automation {'enabled' if config.enabled else 'disabled'}.")
    finally:
        conn.close()


@app.command("enable")
def enable(ctx: typer.Context) -> None:
    _set(ctx, True)


@app.command("disable")
def disable(ctx: typer.Context) -> None:
    _set(ctx, False)


@app.command("logs")
def logs(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", min=1, max=100, help="Entries to show"),
) -> None:
    """Recent creation-cycle log entries, newest first."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        entries = recent_automation_logs(conn, limit=limit)
        for e in entries:
            mark = "ok " if e.success else "ERR"
            market = f"#{e.market_id}" if e.market_id is not None else "-"
            detail = e.error_message or ""
            typer.echo(f"  {_fmt_ms(e.execution_time)}  {mark}  {e.question_type:<12} {market:<6} {detail}")
        typer.echo(f"Total: {len(entries)} entries")
    finally:
        conn.close()

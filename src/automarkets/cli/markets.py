"""Markets subcommand: list."""

from __future__ import annotations

import typer

from automarkets.storage.db import get_connection, init_schema
from automarkets.storage.markets import MarketStore

app = typer.Typer(help="Automated market listing")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    active_only: bool = typer.Option(False, "--active", help="Show only active markets"),
) -> None:
    """List automated markets in the local store."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = MarketStore(conn).list_markets(automated_only=True, active_only=active_only)
        for m in rows:
            kind = m.market_type.value if m.market_type else "?"
            outcome = m.resolved_outcome.value if m.resolved_outcome else ""
            typer.echo(f"  {m.id:>5}  {kind:<12} {m.status.value:<9} {outcome:<8} {m.question[:70]}")
        typer.echo(f"Total: {len(rows)} markets")
    finally:
        conn.close()

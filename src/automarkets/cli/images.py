"""Images subcommand: cleanup."""

from __future__ import annotations

import typer

from automarkets.jobs import run_image_cleanup

app = typer.Typer(help="Composite image maintenance")


@app.command("cleanup")
def cleanup(ctx: typer.Context) -> None:
    """Delete uploaded images older than the configured age."""
    settings = ctx.obj["settings"]
    result = run_image_cleanup(settings)
    typer.echo(f"Deleted {result['deleted']} files, freed {result['bytes_freed'] / 1024:.1f} KB.")
    for err in result["errors"]:
        typer.echo(f"  error: {err}", err=True)

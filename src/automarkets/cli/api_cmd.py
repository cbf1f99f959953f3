"""API server command."""

import typer

from automarkets.api.main import run_api

app = typer.Typer(help="Start the HTTP API (job triggers, automation config, listings)")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    with_scheduler: bool = typer.Option(
        False, "--with-scheduler", help="Run the creation/resolution scheduler in the same process"
    ),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    run_api(host=host, port=port, with_scheduler=with_scheduler, profile=ctx.obj.get("profile"))


if __name__ == "__main__":
    app()

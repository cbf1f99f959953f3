"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from automarkets.config import get_settings
from automarkets.config.settings import configure_logging

app = typer.Typer(
    name="automarkets",
    help="Automarkets - automated memecoin prediction markets: creation, resolution, scheduling.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from automarkets.cli import api_cmd, automation, images, jobs_cmd, markets  # noqa: E402

app.command("create")(jobs_cmd.create)
app.command("resolve")(jobs_cmd.resolve)
app.command("run")(jobs_cmd.run_scheduler)
app.add_typer(automation.app, name="automation")
app.add_typer(markets.app, name="markets")
app.add_typer(images.app, name="images")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()

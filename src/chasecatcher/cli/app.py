"""Unified CLI entry point for chasecatcher.

Config precedence: settings.default.toml -> settings.<env>.toml -> settings.local.toml -> env vars (CHASECATCHER_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import typer

from chasecatcher.cli.layouts_cmd import layouts_app
from chasecatcher.cli.run_cmd import run_offers
from chasecatcher.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("chasecatcher")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "chasecatcher — adds every available merchant reward offer on a rewards page, one at a time. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (CHASECATCHER_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.command("run")(run_offers)
app.add_typer(layouts_app, name="layouts")
app.add_typer(settings_app, name="settings")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context, version: bool = typer.Option(False, "--version", help="Show version and exit.")) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"chasecatcher {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()

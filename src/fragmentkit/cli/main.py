"""fragmentkit CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from fragmentkit.cli.cache import cache_app
from fragmentkit.cli.order import order_cmd, tiers_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("fragmentkit")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fragmentkit {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="fragmentkit",
    help=(
        "fragmentkit — shell-profile fragment loader tooling.\n\n"
        "  fragmentkit order   Resolved load order (dependencies + disabled list).\n"
        "  fragmentkit tiers   Fragments grouped by load tier.\n"
        "  fragmentkit cache   Inspect and maintain the parse cache."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """fragmentkit — shell-profile fragment loader tooling."""


app.command("order")(order_cmd)
app.command("tiers")(tiers_cmd)
app.add_typer(cache_app, name="cache")


@app.command("version")
def version_cmd() -> None:
    """Show the installed fragmentkit version."""
    typer.echo(f"fragmentkit {_installed_version()}")


if __name__ == "__main__":
    app()

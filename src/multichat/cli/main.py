"""Multichat CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from multichat.cli.cache import clear_cache_cmd, purge_cmd
from multichat.cli.faq import faq_app
from multichat.cli.init import init_cmd
from multichat.cli.scan import scan_cmd
from multichat.cli.serve import serve_cmd
from multichat.cli.status import status_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("multichat")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"multichat {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="multichat",
    help=(
        "Multichat: site-grounded support chat.\n\n"
        "  multichat init   Create multichat.yaml and the database.\n"
        "  multichat scan   Build the knowledge base from a sitemap.\n"
        "  multichat serve  Run the chat API."
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
    """Multichat: site-grounded support chat."""


app.command("init")(init_cmd)
app.command("scan")(scan_cmd)
app.command("clear-cache")(clear_cache_cmd)
app.command("purge")(purge_cmd)
app.command("status")(status_cmd)
app.command("serve")(serve_cmd)
app.add_typer(faq_app, name="faq")


@app.command("version")
def version_cmd() -> None:
    """Show the installed multichat version."""
    typer.echo(f"multichat {_version()}")


if __name__ == "__main__":
    app()

"""multichat init: scaffold a project directory.

Creates:
  .multichat.db            knowledge base, FAQs and transients (schema applied)
  multichat.yaml           project config (skipped if it already exists)
  ~/.multichat/config.yaml global defaults (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from multichat.cli.context import console, open_db
from multichat.cli.errors import err_config
from multichat.config import ensure_global_config
from multichat.ingest.http import is_http_url

_DEFAULT_PROJECT_DIR = Path(".")


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    sitemap: Annotated[
        str | None,
        typer.Option("--sitemap", help="Sitemap URL written to site.sitemap_url."),
    ] = None,
) -> None:
    """Initialize a multichat project: database, multichat.yaml and global config."""
    if sitemap is not None and not is_http_url(sitemap):
        console.print(err_config(f"--sitemap must be an absolute http(s) URL: '{sitemap}'"))
        raise typer.Exit(1)

    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    conn = open_db(project_dir / ".multichat.db")
    conn.close()
    console.print("  [green]✓[/] .multichat.db")

    config_path = project_dir / "multichat.yaml"
    if config_path.exists():
        console.print("  [yellow]⚠[/]  multichat.yaml already exists, left unchanged")
    else:
        config_path.write_text(_project_yaml(sitemap), encoding="utf-8")
        console.print("  [green]✓[/] multichat.yaml")

    cfg_path = ensure_global_config()
    console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. export MULTICHAT_API_KEY=sk-...")
    console.print("  2. multichat scan            (build the knowledge base)")
    console.print("  3. multichat serve           (run the chat API)")


def _project_yaml(sitemap: str | None) -> str:
    site = f"  sitemap_url: {sitemap}\n" if sitemap else "  # sitemap_url: https://example.com/sitemap.xml\n"
    return (
        "site:\n"
        f"{site}"
        "  # languages:\n"
        "  #   fr: https://example.com/fr/sitemap.xml\n"
        "\n"
        "chat:\n"
        "  default_language: en\n"
    )

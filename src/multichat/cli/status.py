"""multichat status: configuration, knowledge base and cache overview."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from multichat.cli.context import console, load_cfg, open_components
from multichat.config import MultichatConfig, get_api_key
from multichat.rag.llm_client import API_CACHE_PREFIX
from multichat.server.factory import Components


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .multichat.db."),
    ] = None,
) -> None:
    """Show configuration, knowledge base snapshots and cache state."""
    cfg = load_cfg(db)
    db_path = Path(cfg.storage.path)

    _show_config_panel(cfg, db_path)

    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  multichat scan",
                title="[bold]Knowledge Base[/]",
                expand=False,
            )
        )
        return

    conn, components = open_components(cfg)
    try:
        _show_knowledge_table(cfg, components)
        _show_cache_panel(components)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _show_config_panel(cfg: MultichatConfig, db_path: Path) -> None:
    key_status = "[green]✓ set[/]" if get_api_key() else "[red]✗ missing[/]"
    lines = [
        f"Database:    {db_path}",
        f"Model:       {cfg.generation.model}",
        f"API key:     {key_status}",
        f"Sitemap:     {cfg.site.sitemap_url or '[dim](not set)[/]'}",
        f"Languages:   {', '.join(cfg.chat.languages)}",
        f"Rate limit:  {cfg.rate_limit.limit} requests / {cfg.rate_limit.window}s",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Configuration[/]", expand=False))


def _show_knowledge_table(cfg: MultichatConfig, components: Components) -> None:
    languages = list(dict.fromkeys([*cfg.chat.languages, *components.builder.cached_languages()]))

    table = Table(title="Knowledge Base", show_header=True, header_style="bold")
    table.add_column("Language")
    table.add_column("Status")
    table.add_column("Pages", justify="right")
    table.add_column("Chunks", justify="right")
    table.add_column("FAQs", justify="right")
    table.add_column("Last scanned")
    table.add_column("Expires")

    for lang in languages:
        stats = components.builder.stats(lang)
        status = "[green]Active[/]" if stats.cache_status == "Active" else "[dim]No cache[/]"
        table.add_row(
            lang,
            status,
            str(stats.pages_indexed),
            str(stats.chunks),
            str(components.faqs.count(lang)),
            _fmt_ts(stats.scanned_at, "Never"),
            _fmt_ts(stats.expires_at, "-"),
        )
    console.print(table)


def _show_cache_panel(components: Components) -> None:
    cached = len(components.store.keys(API_CACHE_PREFIX))
    console.print(
        Panel(f"Cached responses: [bold]{cached}[/]", title="[bold]Response Cache[/]", expand=False)
    )


def _fmt_ts(ts: float | None, empty: str) -> str:
    if ts is None:
        return empty
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

"""multichat clear-cache / purge: administrative cache busting."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from multichat.cli.context import console, load_cfg, open_components


def clear_cache_cmd(
    language: Annotated[
        str | None,
        typer.Option("--language", "-l", help="Only clear this language's knowledge base."),
    ] = None,
    kb: Annotated[
        bool,
        typer.Option("--kb/--no-kb", help="Clear knowledge base snapshots."),
    ] = True,
    responses: Annotated[
        bool,
        typer.Option("--responses/--no-responses", help="Clear cached answers."),
    ] = True,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .multichat.db."),
    ] = None,
) -> None:
    """Clear knowledge base snapshots and cached answers."""
    cfg = load_cfg(db)
    conn, components = open_components(cfg)
    try:
        if kb:
            if language:
                removed = components.builder.clear_cache(language)
                state = "cleared" if removed else "was not cached"
                console.print(f"[green]✓[/] Knowledge base '{language}' {state}")
            else:
                count = components.builder.clear_all_caches()
                console.print(f"[green]✓[/] Cleared {count} knowledge base snapshot(s)")
        if responses:
            count = components.client.clear_cache()
            console.print(f"[green]✓[/] Cleared {count} cached response(s)")
    finally:
        conn.close()


def purge_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .multichat.db."),
    ] = None,
) -> None:
    """Delete expired cache entries and rate-limit counters."""
    cfg = load_cfg(db)
    conn, components = open_components(cfg)
    try:
        count = components.store.purge_expired()
    finally:
        conn.close()
    console.print(f"[green]✓[/] Purged {count} expired entr{'y' if count == 1 else 'ies'}")

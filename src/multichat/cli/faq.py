"""multichat faq: manage curated FAQ entries."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from multichat.cli.context import console, load_cfg, open_db
from multichat.cli.errors import err_faq_not_found, err_invalid_language
from multichat.db.models import Faq
from multichat.db.repository import FaqRepository

faq_app = typer.Typer(help="Manage curated FAQ entries.", no_args_is_help=True)

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to .multichat.db."),
]


@faq_app.command("add")
def faq_add(
    title: Annotated[str, typer.Option("--title", "-t", help="The question.")],
    content: Annotated[str, typer.Option("--content", "-c", help="The answer.")],
    language: Annotated[
        str | None,
        typer.Option("--language", "-l", help="Language code (defaults to chat.default_language)."),
    ] = None,
    url: Annotated[str, typer.Option("--url", help="Optional source page URL.")] = "",
    position: Annotated[int, typer.Option("--position", help="Sort order within the language.")] = 0,
    db: _DbOption = None,
) -> None:
    """Add an FAQ entry."""
    cfg = load_cfg(db)
    lang = language or cfg.chat.default_language
    if lang not in cfg.chat.languages:
        console.print(err_invalid_language(lang, cfg.chat.languages))
        raise typer.Exit(1)
    if not title.strip() or not content.strip():
        console.print("[red]Error:[/] --title and --content must not be empty.")
        raise typer.Exit(1)

    conn = open_db(Path(cfg.storage.path))
    try:
        faq_id = FaqRepository(conn).add(
            Faq(id=None, title=title.strip(), content=content.strip(), language=lang, url=url, position=position)
        )
    finally:
        conn.close()
    console.print(f"[green]✓[/] Added FAQ {faq_id} ({lang})")


@faq_app.command("list")
def faq_list(
    language: Annotated[
        str | None,
        typer.Option("--language", "-l", help="Only show this language."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """List FAQ entries."""
    cfg = load_cfg(db)
    conn = open_db(Path(cfg.storage.path))
    try:
        faqs = FaqRepository(conn).list(language)
    finally:
        conn.close()

    if not faqs:
        console.print("[dim]No FAQ entries.[/]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Lang")
    table.add_column("Question")
    table.add_column("Answer", overflow="fold")
    for f in faqs:
        answer = f.content if len(f.content) <= 80 else f.content[:77] + "..."
        table.add_row(str(f.id), f.language, f.title, answer)
    console.print(table)


@faq_app.command("remove")
def faq_remove(
    faq_id: Annotated[int, typer.Argument(help="ID of the FAQ to remove.")],
    db: _DbOption = None,
) -> None:
    """Remove an FAQ entry."""
    cfg = load_cfg(db)
    conn = open_db(Path(cfg.storage.path))
    try:
        removed = FaqRepository(conn).delete(faq_id)
    finally:
        conn.close()

    if not removed:
        console.print(err_faq_not_found(faq_id))
        raise typer.Exit(1)
    console.print(f"[green]✓[/] Removed FAQ {faq_id}")

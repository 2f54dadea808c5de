"""multichat scan: build knowledge base snapshots from sitemaps.

Usage:
  multichat scan --sitemap https://example.com/sitemap.xml
  multichat scan --language fr
  multichat scan --all-languages
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from multichat.cli.context import console, load_cfg, open_components
from multichat.cli.errors import err_no_sitemap, err_scan_failed
from multichat.config import MultichatConfig
from multichat.errors import ScanError
from multichat.ingest.builder import KnowledgeBaseBuilder, ScanReport


def scan_cmd(
    sitemap: Annotated[
        str | None,
        typer.Option("--sitemap", help="Sitemap URL (defaults to site.sitemap_url)."),
    ] = None,
    language: Annotated[
        str | None,
        typer.Option("--language", "-l", help="Language code to store the snapshot under."),
    ] = None,
    all_languages: Annotated[
        bool,
        typer.Option("--all-languages", help="Scan every language in site.languages."),
    ] = False,
    max_pages: Annotated[
        int | None,
        typer.Option("--max-pages", help="Maximum pages to crawl per language."),
    ] = None,
    post_type: Annotated[
        list[str] | None,
        typer.Option("--post-type", help="Only index URLs of this type (repeatable)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .multichat.db (created if missing)."),
    ] = None,
) -> None:
    """Crawl a sitemap and replace the cached knowledge base."""
    cfg = load_cfg(db)
    targets = _targets(cfg, sitemap, language, all_languages)
    pages = max_pages if max_pages is not None else cfg.crawl.max_pages
    post_types = post_type or cfg.site.post_types

    conn, components = open_components(cfg)
    failures = 0
    try:
        for lang, url in targets:
            console.print(f"\n[bold]→ {lang}[/]  {url}")
            if _scan_one(components.builder, url, lang, pages, post_types) is None:
                failures += 1
    finally:
        conn.close()

    if failures:
        raise typer.Exit(1)


def _targets(
    cfg: MultichatConfig,
    sitemap: str | None,
    language: str | None,
    all_languages: bool,
) -> list[tuple[str, str]]:
    if all_languages:
        if not cfg.site.languages:
            console.print(err_no_sitemap())
            raise typer.Exit(1)
        return sorted(cfg.site.languages.items())

    lang = language or cfg.chat.default_language
    url = sitemap or cfg.site.languages.get(lang) or cfg.site.sitemap_url
    if not url:
        console.print(err_no_sitemap(language))
        raise typer.Exit(1)
    return [(lang, url)]


def _scan_one(
    builder: KnowledgeBaseBuilder,
    url: str,
    language: str,
    max_pages: int,
    post_types: list[str],
) -> ScanReport | None:
    with console.status(f"Scanning {url} …"):
        try:
            report = builder.scan(url, language, post_types=post_types, max_pages=max_pages)
        except ScanError as exc:
            console.print(err_scan_failed(language, str(exc)))
            return None
    _print_report(report)
    return report


def _print_report(report: ScanReport) -> None:
    console.print(
        f"  [green]✓[/] {report.pages_indexed} pages indexed, "
        f"{report.chunks} chunks  ({report.urls_found} URLs found)"
    )
    if report.failed:
        console.print(f"  [yellow]{len(report.failed)} URLs failed[/]")
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("URL")
        table.add_column("Error", style="dim")
        for item in report.failed[:20]:
            table.add_row(item["url"], item["error"])
        console.print(table)
        if len(report.failed) > 20:
            console.print(f"  [dim]… and {len(report.failed) - 20} more[/]")

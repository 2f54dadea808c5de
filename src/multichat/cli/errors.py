"""Rich error messages for the CLI.

Every error shown to the user states what went wrong and the command or
setting that fixes it.

Usage:
    from multichat.cli.errors import err_no_sitemap
    console.print(err_no_sitemap("en"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key() -> str:
    return (
        "[red]Error:[/] No API key configured.\n"
        "  Set:  export MULTICHAT_API_KEY=sk-..."
    )


def err_config(message: str) -> str:
    return f"[red]Error:[/] Invalid configuration.\n  {message}"


def err_no_sitemap(language: str | None = None) -> str:
    if language:
        return (
            f"[red]Error:[/] No sitemap configured for language '{language}'.\n"
            "  Add it to multichat.yaml:\n"
            "    site:\n"
            "      languages:\n"
            f"        {language}: https://example.com/{language}/sitemap.xml"
        )
    return (
        "[red]Error:[/] No sitemap URL configured.\n"
        "  Pass:  --sitemap https://example.com/sitemap.xml\n"
        "  or set site.sitemap_url in multichat.yaml"
    )


def err_scan_failed(language: str, reason: str) -> str:
    return (
        f"[red]Error:[/] Scan for '{language}' indexed nothing: {reason}\n"
        "  The previous knowledge base (if any) was kept.\n"
        "  Check the sitemap URL and that its pages are reachable."
    )


def err_invalid_language(language: str, languages: list[str]) -> str:
    return (
        f"[red]Error:[/] Unsupported language '{language}'.\n"
        f"  Enabled languages: {', '.join(languages)}"
    )


def err_faq_not_found(faq_id: int) -> str:
    return (
        f"[yellow]FAQ not found:[/] no entry with id {faq_id}.\n"
        "  Run:  multichat faq list  to see all entries."
    )

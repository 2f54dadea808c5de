"""multichat serve: run the chat API under uvicorn."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn

from multichat.cli.context import console, load_cfg
from multichat.cli.errors import err_no_api_key
from multichat.config import get_api_key
from multichat.server.api import build_app


def serve_cmd(
    host: Annotated[str, typer.Option("--host", help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to listen on.")] = 8000,
    user_id_header: Annotated[
        str | None,
        typer.Option(
            "--user-id-header",
            help="Header with an authenticated user id, set by a trusted proxy.",
        ),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .multichat.db (created if missing)."),
    ] = None,
) -> None:
    """Serve POST /ask, GET /faqs and GET /health."""
    cfg = load_cfg(db)
    if not get_api_key():
        # Requests will get a 500 until a key is set; start anyway.
        console.print(err_no_api_key())

    app = build_app(cfg, user_id_header=user_id_header)
    console.print(f"[bold]multichat[/] listening on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=cfg.logging.level.lower())

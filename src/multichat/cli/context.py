"""Shared CLI plumbing: config loading and component wiring."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from multichat.cli.errors import err_config
from multichat.config import ConfigError, MultichatConfig, load_config
from multichat.db.connection import Database
from multichat.db.schema import initialize
from multichat.log import setup_logging
from multichat.server.factory import Components, build_components

console = Console()


def load_cfg(db: Path | None = None) -> MultichatConfig:
    """Load config, apply the ``--db`` override and set up logging. Exits 1 on bad config."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    if db is not None:
        cfg.storage.path = str(db)
    setup_logging(cfg.logging.level)
    return cfg


def open_db(path: Path) -> sqlite3.Connection:
    conn = Database(path).connect()
    initialize(conn)
    return conn


def open_components(cfg: MultichatConfig) -> tuple[sqlite3.Connection, Components]:
    """Open the configured database and wire every component against it.

    The caller closes the returned connection.
    """
    conn = open_db(Path(cfg.storage.path))
    return conn, build_components(cfg, conn)

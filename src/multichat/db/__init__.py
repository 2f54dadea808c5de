"""Multichat database layer."""

from multichat.db.connection import Database
from multichat.db.migrations import MIGRATIONS, run_migrations
from multichat.db.repository import FaqRepository
from multichat.db.schema import initialize
from multichat.db.store import TransientStore

__all__ = [
    "Database",
    "FaqRepository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "TransientStore",
]

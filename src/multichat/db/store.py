"""Expiring key/value store backed by the ``transients`` table.

Shared by the response cache, the knowledge base cache and the rate limiter.
Values are stored JSON-encoded. An expired row is never returned: reads treat
it as absent and delete it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class TransientStore:
    """Typed access to expiring rows.

    The connection is owned by the caller. All statements run under one
    in-process lock; ``hit()`` additionally takes ``BEGIN IMMEDIATE`` so
    check-and-increment stays atomic across processes sharing the file.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._conn = conn
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Lock serialising every statement on the shared connection."""
        return self._lock

    # ------------------------------------------------------------------
    # Basic key/value
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the decoded value for *key*, or None if missing or expired."""
        now = self._clock()
        with self._lock:
            row = self._conn.execute(
                "SELECT value, expires_at FROM transients WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                return None
            if row["expires_at"] is not None and row["expires_at"] <= now:
                self._conn.execute("DELETE FROM transients WHERE key = ?", (key,))
                return None
        return json.loads(row["value"])

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store *value* under *key*. ``ttl=None`` stores without expiry."""
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO transients (key, value, expires_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               expires_at = excluded.expires_at
                """,
                (key, json.dumps(value), expires_at),
            )

    def expires_at(self, key: str) -> float | None:
        """Return the expiry timestamp of a live row (None if absent or permanent)."""
        with self._lock:
            row = self._conn.execute(
                "SELECT expires_at FROM transients WHERE key = ?", (key,)
            ).fetchone()
        if row is None or row["expires_at"] is None:
            return None
        return row["expires_at"] if row["expires_at"] > self._clock() else None

    def delete(self, key: str) -> bool:
        with self._lock:
            cur = self._conn.execute("DELETE FROM transients WHERE key = ?", (key,))
        return cur.rowcount > 0

    def delete_prefix(self, prefix: str) -> int:
        """Delete every row whose key starts with *prefix*. Returns rows removed."""
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM transients WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix),
            )
        return cur.rowcount

    def keys(self, prefix: str = "") -> list[str]:
        """Return live keys starting with *prefix*, sorted."""
        now = self._clock()
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT key FROM transients
                WHERE substr(key, 1, ?) = ? AND (expires_at IS NULL OR expires_at > ?)
                ORDER BY key
                """,
                (len(prefix), prefix, now),
            ).fetchall()
        return [r["key"] for r in rows]

    def purge_expired(self) -> int:
        """Delete all expired rows. Returns rows removed."""
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM transients WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (self._clock(),),
            )
        if cur.rowcount:
            logger.debug("Purged %d expired transients", cur.rowcount)
        return cur.rowcount

    # ------------------------------------------------------------------
    # Fixed-window counters
    # ------------------------------------------------------------------

    def hit(self, key: str, limit: int, window: float) -> tuple[bool, int, float]:
        """Atomically check and increment the counter stored at *key*.

        A missing or expired counter starts a fresh window at 1. A live counter
        below *limit* is incremented; at or above *limit* it is left untouched.

        Returns:
            ``(allowed, count, retry_after)`` where *count* is the counter value
            after this call and *retry_after* the seconds left in the window.
        """
        now = self._clock()
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                self._conn.execute(
                    "DELETE FROM transients WHERE key = ? AND expires_at IS NOT NULL AND expires_at <= ?",
                    (key, now),
                )
                row = self._conn.execute(
                    "SELECT value, expires_at FROM transients WHERE key = ?", (key,)
                ).fetchone()

                if row is None:
                    expires_at = now + window
                    self._conn.execute(
                        "INSERT INTO transients (key, value, expires_at) VALUES (?, ?, ?)",
                        (key, json.dumps(1), expires_at),
                    )
                    allowed, count = True, 1
                else:
                    expires_at = row["expires_at"] if row["expires_at"] is not None else now + window
                    count = int(json.loads(row["value"]))
                    if count < limit:
                        count += 1
                        self._conn.execute(
                            "UPDATE transients SET value = ? WHERE key = ?",
                            (json.dumps(count), key),
                        )
                        allowed = True
                    else:
                        allowed = False
                self._conn.execute("COMMIT")
            except Exception:
                self._conn.execute("ROLLBACK")
                raise
        return allowed, count, max(0.0, expires_at - now)

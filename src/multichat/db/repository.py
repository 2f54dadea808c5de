"""FAQ persistence.

FAQs are hand-curated question/answer pairs kept alongside the crawled
knowledge base. They are always offered to retrieval for their language.
"""

from __future__ import annotations

import sqlite3
import threading

from multichat.db.models import Faq

_COLUMNS = "id, title, content, language, url, position, created_at"


class FaqRepository:
    """Data access for the ``faqs`` table.

    Wraps an open sqlite3.Connection owned by the caller. When the connection
    is shared with a TransientStore, pass ``store.lock`` so both serialise on
    the same lock.
    """

    def __init__(self, conn: sqlite3.Connection, lock: threading.RLock | None = None) -> None:
        self._conn = conn
        self._lock = lock or threading.RLock()

    def add(self, faq: Faq) -> int:
        """Insert *faq* and return its new id."""
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO faqs (title, content, language, url, position)
                VALUES (?, ?, ?, ?, ?)
                """,
                (faq.title, faq.content, faq.language, faq.url, faq.position),
            )
        return int(cur.lastrowid)

    def get(self, faq_id: int) -> Faq | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM faqs WHERE id = ?", (faq_id,)
            ).fetchone()
        return _row_to_faq(row) if row else None

    def list(self, language: str | None = None) -> list[Faq]:
        """Return FAQs ordered by position then id, optionally for one language."""
        with self._lock:
            if language is None:
                rows = self._conn.execute(
                    f"SELECT {_COLUMNS} FROM faqs ORDER BY position, id"
                ).fetchall()
            else:
                rows = self._conn.execute(
                    f"SELECT {_COLUMNS} FROM faqs WHERE language = ? ORDER BY position, id",
                    (language,),
                ).fetchall()
        return [_row_to_faq(r) for r in rows]

    def delete(self, faq_id: int) -> bool:
        """Delete a FAQ by id. Returns False if no such row existed."""
        with self._lock:
            cur = self._conn.execute("DELETE FROM faqs WHERE id = ?", (faq_id,))
        return cur.rowcount > 0

    def count(self, language: str | None = None) -> int:
        with self._lock:
            if language is None:
                row = self._conn.execute("SELECT COUNT(*) FROM faqs").fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM faqs WHERE language = ?", (language,)
                ).fetchone()
        return int(row[0])


def _row_to_faq(row: sqlite3.Row) -> Faq:
    return Faq(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        language=row["language"],
        url=row["url"],
        position=row["position"],
        created_at=row["created_at"],
    )

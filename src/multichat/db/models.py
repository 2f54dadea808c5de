"""Domain models for the knowledge base and FAQ store."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field


def content_hash(text: str) -> str:
    """SHA-256 hex digest of *text* (UTF-8)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Chunk:
    """A bounded-length fragment of page text used as a unit of retrieval."""

    text: str
    source_url: str = ""
    title: str = ""
    content_hash: str = ""

    @classmethod
    def create(cls, text: str, source_url: str = "", title: str = "") -> Chunk:
        return cls(text=text, source_url=source_url, title=title, content_hash=content_hash(text))

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "source_url": self.source_url,
            "title": self.title,
            "content_hash": self.content_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Chunk:
        text = str(data.get("text", ""))
        return cls(
            text=text,
            source_url=str(data.get("source_url", "")),
            title=str(data.get("title", "")),
            content_hash=str(data.get("content_hash") or content_hash(text)),
        )


@dataclass(frozen=True)
class SourceRef:
    url: str
    title: str
    hash: str


@dataclass
class SnapshotMeta:
    total_pages: int = 0
    total_chunks: int = 0
    scanned_at: float = 0.0  # unix timestamp


@dataclass
class KnowledgeBaseSnapshot:
    """Chunks plus scan metadata for one language.

    Attributes:
        chunks: Retrieval units, in page order.
        metadata: Aggregate counts and the scan timestamp.
        source_urls: One entry per crawled page that produced content.
    """

    chunks: list[Chunk] = field(default_factory=list)
    metadata: SnapshotMeta = field(default_factory=SnapshotMeta)
    source_urls: list[SourceRef] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    def to_dict(self) -> dict:
        return {
            "chunks": [c.to_dict() for c in self.chunks],
            "metadata": {
                "total_pages": self.metadata.total_pages,
                "total_chunks": self.metadata.total_chunks,
                "scanned_at": self.metadata.scanned_at,
            },
            "source_urls": [
                {"url": s.url, "title": s.title, "hash": s.hash} for s in self.source_urls
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> KnowledgeBaseSnapshot:
        meta = data.get("metadata") or {}
        return cls(
            chunks=[Chunk.from_dict(c) for c in data.get("chunks", []) if isinstance(c, dict)],
            metadata=SnapshotMeta(
                total_pages=int(meta.get("total_pages", 0)),
                total_chunks=int(meta.get("total_chunks", 0)),
                scanned_at=float(meta.get("scanned_at", 0.0)),
            ),
            source_urls=[
                SourceRef(url=str(s.get("url", "")), title=str(s.get("title", "")), hash=str(s.get("hash", "")))
                for s in data.get("source_urls", [])
                if isinstance(s, dict)
            ],
        )


@dataclass
class CrawlResult:
    """Outcome of fetching one page. ``error`` is set and ``content`` empty on failure."""

    url: str
    title: str = ""
    content: str = ""
    hash: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.content)


@dataclass
class Faq:
    id: int | None
    title: str
    content: str
    language: str = "en"
    url: str = ""
    position: int = 0
    created_at: str | None = None

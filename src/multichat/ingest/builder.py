"""Knowledge base builder: crawl results → chunked snapshot → transient cache."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from multichat.config import KB_TTL_FLOOR
from multichat.db.models import (
    CrawlResult,
    KnowledgeBaseSnapshot,
    SnapshotMeta,
    SourceRef,
    content_hash,
)
from multichat.db.store import TransientStore
from multichat.errors import ScanError
from multichat.ingest.base import BaseChunker
from multichat.ingest.crawler import ContentCrawler
from multichat.ingest.sitemap import SitemapScanner
from multichat.ingest.sentence import SentenceChunker

logger = logging.getLogger(__name__)

KB_CACHE_PREFIX = "multichat_kb_"


def kb_cache_key(language: str) -> str:
    return f"{KB_CACHE_PREFIX}{language}"


@dataclass
class ScanReport:
    """Outcome of one sitemap scan, for administrators."""

    language: str
    urls_found: int = 0
    pages_indexed: int = 0
    chunks: int = 0
    failed: list[dict[str, str]] = field(default_factory=list)


@dataclass
class KbStats:
    language: str
    pages_indexed: int
    chunks: int
    scanned_at: float | None
    expires_at: float | None

    @property
    def cache_status(self) -> str:
        return "Active" if self.scanned_at is not None else "No cache"


class KnowledgeBaseBuilder:
    """Builds, stores and invalidates per-language knowledge base snapshots.

    Snapshots live in the transient store under ``multichat_kb_<language>``
    with a TTL no shorter than one hour. ``crawler`` and ``scanner`` are only
    needed for ``scan()``.
    """

    def __init__(
        self,
        store: TransientStore,
        *,
        chunker: BaseChunker | None = None,
        crawler: ContentCrawler | None = None,
        scanner: SitemapScanner | None = None,
        ttl: int = 7 * 24 * 3_600,
        default_language: str = "en",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.chunker = chunker or SentenceChunker()
        self.crawler = crawler
        self.scanner = scanner
        self.ttl = max(KB_TTL_FLOOR, int(ttl))
        self.default_language = default_language
        self._clock = clock

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self, results: Iterable[CrawlResult | Mapping[str, Any]]) -> KnowledgeBaseSnapshot:
        """Chunk every crawl result with content into a new snapshot.

        Entries without content, or that are not crawl results at all, are
        skipped. An empty input yields an empty snapshot.
        """
        snapshot = KnowledgeBaseSnapshot()
        for item in results or ():
            page = _as_crawl_result(item)
            if page is None or not page.content.strip():
                continue
            chunks = self.chunker.chunk(page.content, source_url=page.url, title=page.title)
            if not chunks:
                continue
            snapshot.chunks.extend(chunks)
            snapshot.source_urls.append(
                SourceRef(url=page.url, title=page.title, hash=page.hash or content_hash(page.content))
            )

        snapshot.metadata = SnapshotMeta(
            total_pages=len(snapshot.source_urls),
            total_chunks=len(snapshot.chunks),
            scanned_at=self._clock(),
        )
        return snapshot

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def save_to_cache(self, snapshot: KnowledgeBaseSnapshot, language: str | None = None) -> None:
        lang = language or self.default_language
        self.store.set(kb_cache_key(lang), snapshot.to_dict(), ttl=self.ttl)
        logger.info(
            "Cached knowledge base for '%s': %d pages, %d chunks",
            lang,
            snapshot.metadata.total_pages,
            snapshot.metadata.total_chunks,
        )

    def get_from_cache(self, language: str | None = None) -> KnowledgeBaseSnapshot | None:
        """Return the live snapshot for *language*, or None if absent, expired or unreadable."""
        lang = language or self.default_language
        raw = self.store.get(kb_cache_key(lang))
        if raw is None:
            return None
        if not isinstance(raw, dict):
            logger.warning("Discarding malformed knowledge base cache for '%s'", lang)
            return None
        try:
            return KnowledgeBaseSnapshot.from_dict(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Discarding malformed knowledge base cache for '%s': %s", lang, exc)
            return None

    def is_cache_valid(self, language: str | None = None) -> bool:
        snapshot = self.get_from_cache(language)
        return snapshot is not None and not snapshot.is_empty

    def clear_cache(self, language: str | None = None) -> bool:
        """Remove the snapshot for *language*. Returns False if there was none."""
        lang = language or self.default_language
        removed = self.store.delete(kb_cache_key(lang))
        logger.info("Cleared knowledge base cache for '%s'", lang)
        return removed

    def clear_all_caches(self) -> int:
        removed = self.store.delete_prefix(KB_CACHE_PREFIX)
        logger.info("Cleared %d knowledge base caches", removed)
        return removed

    def cached_languages(self) -> list[str]:
        return [k[len(KB_CACHE_PREFIX):] for k in self.store.keys(KB_CACHE_PREFIX)]

    def stats(self, language: str | None = None) -> KbStats:
        lang = language or self.default_language
        snapshot = self.get_from_cache(lang)
        if snapshot is None:
            return KbStats(language=lang, pages_indexed=0, chunks=0, scanned_at=None, expires_at=None)
        return KbStats(
            language=lang,
            pages_indexed=snapshot.metadata.total_pages,
            chunks=snapshot.metadata.total_chunks,
            scanned_at=snapshot.metadata.scanned_at,
            expires_at=self.store.expires_at(kb_cache_key(lang)),
        )

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def scan(
        self,
        sitemap_url: str,
        language: str | None = None,
        *,
        post_types: Iterable[str] | None = None,
        max_pages: int = 50,
    ) -> ScanReport:
        """Discover, crawl and index *sitemap_url*, replacing the cached snapshot.

        Raises:
            ScanError: No URLs were found or no page produced content. The
                previously cached snapshot is left in place.
        """
        if self.crawler is None or self.scanner is None:
            raise ScanError("Scanning requires a crawler and a sitemap scanner")

        lang = language or self.default_language
        report = ScanReport(language=lang)

        urls = self.scanner.scan(sitemap_url, post_types)
        report.urls_found = len(urls)
        if not urls:
            logger.error("Scan of %s for '%s' found no URLs", sitemap_url, lang)
            raise ScanError(f"No URLs found in sitemap '{sitemap_url}'")

        succeeded, failed = self.crawler.crawl_many(urls, max_pages=max_pages)
        report.failed = [{"url": r.url, "error": r.error or "empty content"} for r in failed]

        snapshot = self.build(succeeded)
        if snapshot.is_empty:
            logger.error("Scan of %s for '%s' extracted no content", sitemap_url, lang)
            raise ScanError(f"No content could be extracted from '{sitemap_url}'")

        self.save_to_cache(snapshot, lang)
        report.pages_indexed = snapshot.metadata.total_pages
        report.chunks = snapshot.metadata.total_chunks
        return report


def _as_crawl_result(item: CrawlResult | Mapping[str, Any]) -> CrawlResult | None:
    if isinstance(item, CrawlResult):
        return item if item.error is None else None
    if isinstance(item, Mapping):
        content = item.get("content")
        if not isinstance(content, str):
            return None
        return CrawlResult(
            url=str(item.get("url", "")),
            title=str(item.get("title", "")),
            content=content,
            hash=str(item.get("hash", "")),
        )
    return None

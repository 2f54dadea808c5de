"""Content crawler: fetch a page and reduce it to indexable plain text."""

from __future__ import annotations

import logging
import re
import time
import urllib.parse
from collections.abc import Callable, Iterable

import html2text
from bs4 import BeautifulSoup

from multichat.config import DEFAULT_USER_AGENT
from multichat.db.models import CrawlResult, content_hash
from multichat.ingest import http

logger = logging.getLogger(__name__)

_ALLOWED_CONTENT_TYPES = {"text/html", "application/xhtml+xml", "text/plain"}
_STRIP_TAGS = ["script", "style", "nav", "noscript"]
_ELLIPSIS = "..."

# Leftover markdown block markers from html2text output.
_MARKDOWN_MARKERS = re.compile(r"(?m)^\s*(?:#{1,6}|[*+\-]|>|\d+\\?\.)\s+")
_MARKDOWN_ESCAPES = re.compile(r"\\([\\`*_{}\[\]()#+\-.!])")
_WHITESPACE = re.compile(r"\s+")

# Navigation and footer boilerplate.
_BOILERPLATE: list[re.Pattern[str]] = [
    re.compile(r"\bSkip to (?:main )?content\b", re.IGNORECASE),
    re.compile(r"\bHome\s+About(?:\s+Us)?\s+(?:Services\s+)?(?:Blog\s+)?Contact(?:\s+Us)?\b", re.IGNORECASE),
    re.compile(r"\b(?:This|Our) (?:web)?site uses cookies[^.]*\.", re.IGNORECASE),
    re.compile(r"\bWe use cookies[^.]*\.", re.IGNORECASE),
    re.compile(r"\bAccept(?: All)? Cookies\b", re.IGNORECASE),
    re.compile(r"(?:Copyright\s*)?©\s*\d{4}[^.]*\.?", re.IGNORECASE),
    re.compile(r"\bAll rights reserved\.?", re.IGNORECASE),
]

_h2t = html2text.HTML2Text()
_h2t.ignore_links = True
_h2t.ignore_images = True
_h2t.ignore_emphasis = True
_h2t.ignore_tables = True
_h2t.body_width = 0

Fetcher = Callable[[str], tuple[bytes, str]]


class ContentCrawler:
    """Fetch pages and extract title plus main-content text.

    Failures never raise: ``crawl()`` returns a CrawlResult with ``error`` set
    and empty content, and the page is skipped by the caller.
    """

    def __init__(
        self,
        *,
        timeout: int = 30,
        verify_ssl: bool = False,
        user_agent: str = DEFAULT_USER_AGENT,
        max_content_chars: int = 5_000,
        delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
        fetcher: Fetcher | None = None,
    ) -> None:
        self.timeout = max(1, min(30, int(timeout)))
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self.max_content_chars = max_content_chars
        self.delay = delay
        self._sleep = sleep
        self._fetcher = fetcher or self._http_fetch

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def crawl(self, url: str) -> CrawlResult:
        """Fetch *url* and return its extracted title and content."""
        if not http.is_http_url(url):
            logger.warning("Skipping invalid URL %r", url)
            return CrawlResult(url=url, error="Invalid URL")

        try:
            body, content_type = self._fetcher(url)
        except http.FetchError as exc:
            logger.warning("Crawl failed for %s: %s", url, exc)
            return CrawlResult(url=url, error=str(exc))

        if content_type not in _ALLOWED_CONTENT_TYPES:
            logger.warning("Skipping %s: unsupported Content-Type %r", url, content_type)
            return CrawlResult(url=url, error=f"Unsupported Content-Type '{content_type}'")

        html = body.decode("utf-8", errors="replace")
        if not html.strip():
            return CrawlResult(url=url, error="Page content is empty")

        if content_type == "text/plain":
            content = self._finish(html)
            title = title_from_url(url)
        else:
            content = self.extract_text(html)
            title = self.extract_title(html, url)

        if not content:
            return CrawlResult(url=url, title=title, error="No text content extracted")
        return CrawlResult(url=url, title=title, content=content, hash=content_hash(content))

    def crawl_many(
        self, urls: Iterable[str], max_pages: int = 50
    ) -> tuple[list[CrawlResult], list[CrawlResult]]:
        """Crawl up to *max_pages* URLs in order, pausing ``delay`` seconds between fetches.

        Returns:
            ``(succeeded, failed)``, each in crawl order.
        """
        succeeded: list[CrawlResult] = []
        failed: list[CrawlResult] = []
        for count, url in enumerate(urls):
            if count >= max_pages:
                break
            if count and self.delay > 0:
                self._sleep(self.delay)
            result = self.crawl(url)
            (succeeded if result.ok else failed).append(result)
        logger.info("Crawled %d pages (%d failed)", len(succeeded) + len(failed), len(failed))
        return succeeded, failed

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_text(self, html: str) -> str:
        """Return title, meta description and main-region text as one cleaned string."""
        soup = BeautifulSoup(html, "html.parser")

        title = soup.title.get_text(" ", strip=True) if soup.title else ""
        meta = soup.find("meta", attrs={"name": "description"})
        description = str(meta.get("content", "")).strip() if meta else ""

        for tag in soup.find_all(_STRIP_TAGS):
            tag.decompose()

        region = (
            soup.find(id="main")
            or soup.find("main")
            or soup.find(class_="elementor-container")
            or soup.body
            or soup
        )
        body_text = _h2t.handle(str(region))
        body_text = _MARKDOWN_MARKERS.sub(" ", body_text)
        body_text = _MARKDOWN_ESCAPES.sub(r"\1", body_text)

        return self._finish(" ".join(p for p in (title, description, body_text) if p))

    @staticmethod
    def extract_title(html: str, url: str = "") -> str:
        """``<title>``, else the first ``<h1>``, else a title derived from *url*."""
        soup = BeautifulSoup(html, "html.parser")
        for node in (soup.title, soup.find("h1")):
            if node is not None:
                text = node.get_text(" ", strip=True)
                if text:
                    return text
        return title_from_url(url)

    def _finish(self, text: str) -> str:
        text = _WHITESPACE.sub(" ", text).strip()
        for pattern in _BOILERPLATE:
            text = pattern.sub(" ", text)
        text = _WHITESPACE.sub(" ", text).strip()
        if len(text) > self.max_content_chars:
            text = text[: self.max_content_chars].rstrip() + _ELLIPSIS
        return text

    def _http_fetch(self, url: str) -> tuple[bytes, str]:
        return http.fetch(
            url,
            timeout=self.timeout,
            user_agent=self.user_agent,
            verify_ssl=self.verify_ssl,
        )


def title_from_url(url: str) -> str:
    """Derive a title from the last path segment: ``/about-us/`` → ``About Us``."""
    path = urllib.parse.urlparse(url).path.rstrip("/")
    slug = path.rsplit("/", 1)[-1] if path else ""
    slug = re.sub(r"\.[a-z0-9]+$", "", slug, flags=re.IGNORECASE)
    words = re.sub(r"[-_]+", " ", slug).strip()
    return words.title() if words else "Page"

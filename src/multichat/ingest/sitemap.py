"""Sitemap scanner: discover indexable page URLs from a sitemap or sitemap index."""

from __future__ import annotations

import logging
import urllib.parse
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable

from multichat.config import DEFAULT_USER_AGENT
from multichat.ingest import http

logger = logging.getLogger(__name__)

# Substrings that mark archive, feed and binary URLs.
EXCLUDED_PATTERNS: tuple[str, ...] = (
    "/category/",
    "/tag/",
    "/author/",
    "/search",
    "/wp-",
    "/feed/",
    "/archive/",
    "/date/",
    "?",
    "#",
    ".pdf",
    ".jpg",
    ".png",
    ".gif",
    ".zip",
)

_POST_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("product", ("/product", "/shop/")),
    ("category", ("/category/",)),
    ("tag", ("/tag/",)),
    ("post", ("/blog/", "/post", "/news/", "/article")),
)

Fetcher = Callable[[str], tuple[bytes, str]]


def classify_url(url: str) -> str:
    """Guess the content type of *url* from its path.

    Keyword matches win; otherwise paths at most two segments deep are pages
    and anything deeper is ``"other"``.
    """
    path = urllib.parse.urlparse(url).path.lower()
    for post_type, needles in _POST_TYPE_KEYWORDS:
        if any(n in path for n in needles):
            return post_type
    depth = len([p for p in path.split("/") if p])
    return "page" if depth <= 2 else "other"


class SitemapScanner:
    """Walk a sitemap (recursing through sitemap indexes) and return page URLs.

    Recursion is capped at ``max_depth`` nested indexes and ``max_urls``
    collected URLs. Fetch and parse failures are logged and yield no URLs for
    that sitemap; they never raise.
    """

    def __init__(
        self,
        *,
        timeout: int = 30,
        verify_ssl: bool = False,
        user_agent: str = DEFAULT_USER_AGENT,
        max_depth: int = 5,
        max_urls: int = 10_000,
        external: bool = True,
        fetcher: Fetcher | None = None,
    ) -> None:
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self.max_depth = max_depth
        self.max_urls = max_urls
        self.external = external
        self._fetcher = fetcher or self._http_fetch

    def scan(self, sitemap_url: str, post_types: Iterable[str] | None = None) -> list[str]:
        """Return the de-duplicated page URLs reachable from *sitemap_url*.

        Args:
            sitemap_url: A urlset or sitemap index URL.
            post_types: If non-empty, keep only URLs whose ``classify_url()``
                result is in this collection.
        """
        found: dict[str, None] = {}
        host = urllib.parse.urlparse(sitemap_url).netloc.lower()
        self._collect(sitemap_url, 0, set(), found, host)

        urls = list(found)
        wanted = set(post_types or ())
        if wanted:
            urls = [u for u in urls if classify_url(u) in wanted]
        logger.info("Sitemap %s: %d URLs found", sitemap_url, len(urls))
        return urls

    def is_valid_page_url(self, url: str, host: str = "") -> bool:
        if any(p in url for p in EXCLUDED_PATTERNS):
            return False
        if not http.is_http_url(url):
            return False
        if not self.external and host:
            return urllib.parse.urlparse(url).netloc.lower() == host
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collect(
        self,
        sitemap_url: str,
        depth: int,
        visited: set[str],
        found: dict[str, None],
        host: str,
    ) -> None:
        if sitemap_url in visited:
            return
        visited.add(sitemap_url)

        root = self._load(sitemap_url)
        if root is None:
            return

        children = [loc.text.strip() for loc in root.findall("{*}sitemap/{*}loc") if loc.text]
        if children:
            if depth >= self.max_depth:
                logger.warning(
                    "Sitemap index %s exceeds max depth %d, not descending",
                    sitemap_url,
                    self.max_depth,
                )
                return
            for child in children:
                if len(found) >= self.max_urls:
                    break
                logger.debug("Fetching nested sitemap %s", child)
                self._collect(child, depth + 1, visited, found, host)
            return

        for loc in root.findall("{*}url/{*}loc"):
            if len(found) >= self.max_urls:
                logger.warning("Sitemap URL cap (%d) reached at %s", self.max_urls, sitemap_url)
                return
            url = (loc.text or "").strip()
            if url and self.is_valid_page_url(url, host):
                found.setdefault(url, None)

    def _load(self, sitemap_url: str) -> ET.Element | None:
        try:
            body, _ = self._fetcher(sitemap_url)
        except http.FetchError as exc:
            logger.error("Failed to fetch sitemap %s: %s", sitemap_url, exc)
            return None
        if not body.strip():
            logger.error("Sitemap %s is empty", sitemap_url)
            return None
        try:
            return ET.fromstring(body)
        except ET.ParseError as exc:
            logger.error("Malformed sitemap XML at %s: %s", sitemap_url, exc)
            return None

    def _http_fetch(self, url: str) -> tuple[bytes, str]:
        return http.fetch(
            url,
            timeout=self.timeout,
            user_agent=self.user_agent,
            verify_ssl=self.verify_ssl,
        )

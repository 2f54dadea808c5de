"""Construct the component graph from configuration.

Every component is built once here and handed to its collaborators
explicitly; nothing is looked up globally.
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass

from multichat.config import MultichatConfig, get_api_key
from multichat.db.repository import FaqRepository
from multichat.db.store import TransientStore
from multichat.ingest.builder import KnowledgeBaseBuilder
from multichat.ingest.crawler import ContentCrawler
from multichat.ingest.sentence import SentenceChunker
from multichat.ingest.sitemap import SitemapScanner
from multichat.rag.knowledge import KnowledgeResolver
from multichat.rag.llm_client import ApiClient
from multichat.server.language import DefaultLanguageResolver, LanguageResolver
from multichat.server.orchestrator import ChatService
from multichat.server.rate_limit import RateLimiter


@dataclass
class Components:
    store: TransientStore
    faqs: FaqRepository
    builder: KnowledgeBaseBuilder
    client: ApiClient
    rate_limiter: RateLimiter
    service: ChatService


def build_components(
    cfg: MultichatConfig,
    conn: sqlite3.Connection,
    *,
    api_key_provider: Callable[[], str] = get_api_key,
    language_resolver: LanguageResolver | None = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
) -> Components:
    """Wire every component against an initialised database connection."""
    store = TransientStore(conn, clock=clock)
    faqs = FaqRepository(conn, lock=store.lock)

    crawler = ContentCrawler(
        timeout=cfg.crawl.timeout,
        verify_ssl=cfg.crawl.verify_ssl,
        user_agent=cfg.crawl.user_agent,
        max_content_chars=cfg.crawl.max_content_chars,
        delay=cfg.crawl.delay,
        sleep=sleep,
    )
    scanner = SitemapScanner(
        timeout=cfg.crawl.timeout,
        verify_ssl=cfg.crawl.verify_ssl,
        user_agent=cfg.crawl.user_agent,
        max_depth=cfg.crawl.max_sitemap_depth,
        max_urls=cfg.crawl.max_sitemap_urls,
        external=cfg.site.external,
    )
    builder = KnowledgeBaseBuilder(
        store,
        chunker=SentenceChunker(cfg.knowledge.max_chunk_size),
        crawler=crawler,
        scanner=scanner,
        ttl=cfg.knowledge.cache_ttl,
        default_language=cfg.chat.default_language,
        clock=clock,
    )
    client = ApiClient(
        store,
        model=cfg.generation.model,
        api_base=cfg.generation.api_base,
        temperature=cfg.generation.temperature,
        max_tokens=cfg.generation.max_tokens,
        timeout=cfg.generation.timeout,
        max_retries=cfg.generation.max_retries,
        cache_ttl=cfg.generation.cache_ttl,
        sleep=sleep,
    )
    rate_limiter = RateLimiter(store, limit=cfg.rate_limit.limit, window=cfg.rate_limit.window)
    service = ChatService(
        rate_limiter=rate_limiter,
        knowledge=KnowledgeResolver(builder, faqs, top_n=cfg.knowledge.top_n),
        client=client,
        api_key_provider=api_key_provider,
        language_resolver=language_resolver or DefaultLanguageResolver(cfg.chat.default_language),
        languages=cfg.chat.languages,
        max_message_length=cfg.chat.max_message_length,
    )
    return Components(
        store=store,
        faqs=faqs,
        builder=builder,
        client=client,
        rate_limiter=rate_limiter,
        service=service,
    )

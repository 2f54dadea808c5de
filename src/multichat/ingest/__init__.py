"""Multichat ingest pipeline: sitemap discovery, crawling, chunking, snapshot building."""

from multichat.ingest.base import BaseChunker
from multichat.ingest.builder import KnowledgeBaseBuilder, ScanReport
from multichat.ingest.crawler import ContentCrawler
from multichat.ingest.sentence import SentenceChunker
from multichat.ingest.sitemap import SitemapScanner

__all__ = [
    "BaseChunker",
    "ContentCrawler",
    "KnowledgeBaseBuilder",
    "ScanReport",
    "SentenceChunker",
    "SitemapScanner",
]

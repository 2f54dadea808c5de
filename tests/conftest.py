"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest
import yaml

# Keep litellm from fetching its model cost map over the network at import time.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import multichat.config as config_module
from multichat.db.connection import Database
from multichat.db.models import Chunk
from multichat.db.repository import FaqRepository
from multichat.db.schema import initialize
from multichat.db.store import TransientStore
from multichat.ingest import http


class FakeClock:
    """Manually advanced clock for TTL and rate-limit tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for time.sleep; records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path, monkeypatch):
    """No real config files, credentials or log handlers leak between tests."""
    for name in (
        "MULTICHAT_API_KEY",
        "OPENAI_API_KEY",
        "MULTICHAT_GENERATION_MODEL",
        "MULTICHAT_API_BASE",
        "MULTICHAT_SITEMAP_URL",
        "MULTICHAT_DB_PATH",
        "MULTICHAT_LOG_LEVEL",
        "MULTICHAT_RATE_LIMIT",
        "MULTICHAT_RATE_WINDOW",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        config_module, "_GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml"
    )
    yield
    logger = logging.getLogger("multichat")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".multichat.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def store(tmp_db, clock):
    return TransientStore(tmp_db, clock=clock)


@pytest.fixture
def faq_repo(tmp_db):
    return FaqRepository(tmp_db)


@pytest.fixture
def hours_chunk():
    return Chunk.create(
        "Our business hours are Monday to Friday, 9 AM to 6 PM EST.",
        source_url="https://example.com/contact/",
        title="Contact",
    )


# ---------------------------------------------------------------------------
# CLI: project directory and a fake website
# ---------------------------------------------------------------------------

SITEMAP = "https://shop.test/sitemap.xml"


def _urlset(*urls: str) -> bytes:
    body = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{body}</urlset>'.encode()


def _page(title: str, text: str) -> bytes:
    return (
        f"<html><head><title>{title}</title></head>"
        f"<body><main><p>{text}</p></main></body></html>"
    ).encode()


SITE: dict[str, tuple[bytes, str]] = {
    SITEMAP: (
        _urlset("https://shop.test/shipping/", "https://shop.test/returns/"),
        "application/xml",
    ),
    "https://shop.test/shipping/": (_page("Shipping", "We ship worldwide in five days."), "text/html"),
    "https://shop.test/returns/": (_page("Returns", "Returns are free for thirty days."), "text/html"),
    "https://shop.test/partial.xml": (
        _urlset("https://shop.test/shipping/", "https://shop.test/gone/"),
        "application/xml",
    ),
    "https://shop.test/empty.xml": (_urlset(), "application/xml"),
    "https://shop.test/fr/sitemap.xml": (_urlset("https://shop.test/fr/livraison/"), "application/xml"),
    "https://shop.test/fr/livraison/": (
        _page("Livraison", "Livraison gratuite en France."),
        "text/html",
    ),
}


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """CWD with a multichat.yaml that disables the crawl delay."""
    (tmp_path / "multichat.yaml").write_text(yaml.dump({"crawl": {"delay": 0}}), encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def fake_site(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Serve SITE instead of the network. Returns fetched URLs in order."""
    fetched: list[str] = []

    def fetch(url, *, timeout, user_agent, verify_ssl=True):
        fetched.append(url)
        if url not in SITE:
            raise http.FetchError(f"HTTP 404 for '{url}'")
        return SITE[url]

    monkeypatch.setattr(http, "fetch", fetch)
    return fetched

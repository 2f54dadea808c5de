"""Tests for SitemapScanner and classify_url."""

from __future__ import annotations

from http import client
from unittest.mock import MagicMock, patch

import pytest

from multichat.ingest.http import FetchError
from multichat.ingest.sitemap import SitemapScanner, classify_url

NS = 'xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"'


def _urlset(*urls: str) -> bytes:
    body = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset {NS}>{body}</urlset>'.encode()


def _index(*sitemaps: str) -> bytes:
    body = "".join(f"<sitemap><loc>{s}</loc></sitemap>" for s in sitemaps)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex {NS}>{body}</sitemapindex>'.encode()


def _scanner(docs: dict[str, bytes], calls: list[str] | None = None, **kwargs) -> SitemapScanner:
    def fetch(url: str) -> tuple[bytes, str]:
        if calls is not None:
            calls.append(url)
        if url not in docs:
            raise FetchError(f"HTTP 404 for '{url}'")
        return docs[url], "application/xml"

    return SitemapScanner(fetcher=fetch, **kwargs)


def test_plain_urlset():
    docs = {"https://s.test/sitemap.xml": _urlset("https://s.test/", "https://s.test/about/")}
    assert _scanner(docs).scan("https://s.test/sitemap.xml") == [
        "https://s.test/",
        "https://s.test/about/",
    ]


def test_urlset_without_namespace():
    docs = {"https://s.test/sitemap.xml": b"<urlset><url><loc>https://s.test/a/</loc></url></urlset>"}
    assert _scanner(docs).scan("https://s.test/sitemap.xml") == ["https://s.test/a/"]


def test_index_returns_union_of_children_deduplicated():
    docs = {
        "https://s.test/sitemap.xml": _index("https://s.test/pages.xml", "https://s.test/posts.xml"),
        "https://s.test/pages.xml": _urlset("https://s.test/a/", "https://s.test/b/"),
        "https://s.test/posts.xml": _urlset("https://s.test/b/", "https://s.test/blog/hello/"),
    }
    assert _scanner(docs).scan("https://s.test/sitemap.xml") == [
        "https://s.test/a/",
        "https://s.test/b/",
        "https://s.test/blog/hello/",
    ]


def test_failed_child_sitemap_is_skipped():
    docs = {
        "https://s.test/sitemap.xml": _index("https://s.test/gone.xml", "https://s.test/pages.xml"),
        "https://s.test/pages.xml": _urlset("https://s.test/a/"),
    }
    assert _scanner(docs).scan("https://s.test/sitemap.xml") == ["https://s.test/a/"]


def test_excluded_patterns_filtered():
    docs = {
        "https://s.test/sitemap.xml": _urlset(
            "https://s.test/keep/",
            "https://s.test/category/news/",
            "https://s.test/tag/sale/",
            "https://s.test/author/bob/",
            "https://s.test/wp-content/uploads/x/",
            "https://s.test/feed/",
            "https://s.test/page/?p=1",
            "https://s.test/files/manual.pdf",
            "https://s.test/img/logo.png",
        )
    }
    assert _scanner(docs).scan("https://s.test/sitemap.xml") == ["https://s.test/keep/"]


@pytest.mark.parametrize("body", [b"<urlset><url><loc>", b"not xml at all", b""])
def test_malformed_or_empty_xml_returns_empty(body):
    docs = {"https://s.test/sitemap.xml": body}
    assert _scanner(docs).scan("https://s.test/sitemap.xml") == []


def test_unreachable_sitemap_returns_empty():
    assert _scanner({}).scan("https://s.test/sitemap.xml") == []


def test_bad_status_line_returns_empty():
    opener = MagicMock()
    opener.open.side_effect = client.BadStatusLine("GARBAGE")
    with patch("multichat.ingest.http.urllib.request.build_opener", return_value=opener):
        assert SitemapScanner(timeout=5).scan("https://s.test/sitemap.xml") == []


def test_index_depth_capped():
    docs = {
        "https://s.test/0.xml": _index("https://s.test/1.xml"),
        "https://s.test/1.xml": _index("https://s.test/2.xml"),
        "https://s.test/2.xml": _index("https://s.test/3.xml"),
        "https://s.test/3.xml": _urlset("https://s.test/deep/"),
    }
    calls: list[str] = []
    assert _scanner(docs, calls, max_depth=2).scan("https://s.test/0.xml") == []
    assert calls == ["https://s.test/0.xml", "https://s.test/1.xml", "https://s.test/2.xml"]

    assert _scanner(docs, max_depth=5).scan("https://s.test/0.xml") == ["https://s.test/deep/"]


def test_self_referencing_index_terminates():
    docs = {"https://s.test/sitemap.xml": _index("https://s.test/sitemap.xml")}
    calls: list[str] = []
    assert _scanner(docs, calls).scan("https://s.test/sitemap.xml") == []
    assert calls == ["https://s.test/sitemap.xml"]


def test_url_cap():
    urls = [f"https://s.test/p{i}/" for i in range(20)]
    docs = {"https://s.test/sitemap.xml": _urlset(*urls)}
    assert _scanner(docs, max_urls=5).scan("https://s.test/sitemap.xml") == urls[:5]


def test_external_false_keeps_same_host_only():
    docs = {
        "https://s.test/sitemap.xml": _urlset("https://s.test/a/", "https://other.test/b/")
    }
    assert _scanner(docs, external=False).scan("https://s.test/sitemap.xml") == ["https://s.test/a/"]
    assert len(_scanner(docs, external=True).scan("https://s.test/sitemap.xml")) == 2


def test_post_types_filter():
    docs = {
        "https://s.test/sitemap.xml": _urlset(
            "https://s.test/about/",
            "https://s.test/blog/first-post/",
            "https://s.test/product/widget/",
        )
    }
    scanner = _scanner(docs)
    assert scanner.scan("https://s.test/sitemap.xml", post_types=["post"]) == [
        "https://s.test/blog/first-post/"
    ]
    assert scanner.scan("https://s.test/sitemap.xml", post_types=["page", "product"]) == [
        "https://s.test/about/",
        "https://s.test/product/widget/",
    ]
    assert len(scanner.scan("https://s.test/sitemap.xml", post_types=[])) == 3


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://s.test/product/widget/", "product"),
        ("https://s.test/shop/widget/", "product"),
        ("https://s.test/blog/hello/", "post"),
        ("https://s.test/news/today/", "post"),
        ("https://s.test/", "page"),
        ("https://s.test/about/team/", "page"),
        ("https://s.test/a/b/c/", "other"),
    ],
)
def test_classify_url(url, expected):
    assert classify_url(url) == expected


def test_is_valid_page_url_rejects_non_http():
    scanner = SitemapScanner()
    assert not scanner.is_valid_page_url("mailto:help@s.test")
    assert scanner.is_valid_page_url("https://s.test/contact/")

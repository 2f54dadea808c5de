"""Bounded HTTP GET shared by the crawler and the sitemap scanner.

- Allowed URL schemes: https:// and http:// only.
- Every request carries an explicit timeout.
- Max response body: 5 MB.
- Max redirects: 3.
- TLS verification is optional (many small sites ship broken chains).
"""

from __future__ import annotations

import ssl
import urllib.error
import urllib.parse
import urllib.request
from http.client import HTTPException, HTTPResponse

MAX_BYTES = 5 * 1024 * 1024  # 5 MB
MAX_REDIRECTS = 3
_ALLOWED_SCHEMES = {"https", "http"}


class FetchError(RuntimeError):
    """Raised when a URL cannot be fetched. Callers log it and move on."""


def is_http_url(url: str) -> bool:
    """True if *url* is an absolute http(s) URL with a host."""
    parsed = urllib.parse.urlparse(url)
    return parsed.scheme in _ALLOWED_SCHEMES and bool(parsed.netloc)


def fetch(
    url: str,
    *,
    timeout: float,
    user_agent: str,
    verify_ssl: bool = True,
) -> tuple[bytes, str]:
    """GET *url* and return ``(body, content_type)``.

    ``content_type`` is lowercased, without parameters.

    Raises:
        FetchError: invalid URL, transport failure, non-2xx status or
            oversized body.
    """
    if not is_http_url(url):
        raise FetchError(f"Invalid URL '{url}'. Only absolute http(s) URLs are allowed.")

    handlers: list[urllib.request.BaseHandler] = [_LimitedRedirectHandler(MAX_REDIRECTS)]
    if not verify_ssl:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        handlers.append(urllib.request.HTTPSHandler(context=context))
    opener = urllib.request.build_opener(*handlers)
    request = urllib.request.Request(url, headers={"User-Agent": user_agent})

    try:
        response: HTTPResponse = opener.open(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        raise FetchError(f"HTTP {exc.code} for '{url}'") from exc
    except (urllib.error.URLError, HTTPException, OSError, ValueError) as exc:
        raise FetchError(f"Failed to fetch '{url}': {exc}") from exc

    with response:
        raw_ct = response.headers.get("Content-Type", "text/html")
        content_type = raw_ct.split(";")[0].strip().lower()
        try:
            body = response.read(MAX_BYTES + 1)
        except (HTTPException, OSError) as exc:
            raise FetchError(f"Failed to read '{url}': {exc}") from exc

    if len(body) > MAX_BYTES:
        raise FetchError(
            f"Response body exceeds {MAX_BYTES // (1024 * 1024)} MB limit for '{url}'."
        )
    return body, content_type


class _LimitedRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Raise an error after more than *max_redirects* redirects."""

    def __init__(self, max_redirects: int) -> None:
        self._max_redirects = max_redirects
        self._count = 0

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        self._count += 1
        if self._count > self._max_redirects:
            raise FetchError(
                f"Too many redirects (>{self._max_redirects}) for '{req.full_url}'."
            )
        return super().redirect_request(req, fp, code, msg, headers, newurl)

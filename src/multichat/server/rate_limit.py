"""Per-identity fixed-window rate limiting."""

from __future__ import annotations

import hashlib
import ipaddress
import logging
from collections.abc import Mapping

from multichat.db.store import TransientStore
from multichat.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "multichat_rl_"
UNKNOWN_IP = "0.0.0.0"
RATE_LIMIT_MESSAGE = "Too many requests. Please wait a moment before trying again."

# Checked in order; the first valid address wins.
_IP_HEADERS: tuple[str, ...] = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip")


def _valid_ip(value: str | None) -> str | None:
    if not value:
        return None
    candidate = value.split(",")[0].strip()
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def client_ip(headers: Mapping[str, str], remote_addr: str | None = None) -> str:
    """Best-effort caller address from proxy headers, then the socket address."""
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in _IP_HEADERS:
        ip = _valid_ip(lowered.get(name))
        if ip:
            return ip
    return _valid_ip(remote_addr) or UNKNOWN_IP


def client_identity(
    headers: Mapping[str, str],
    remote_addr: str | None = None,
    user_id: str | None = None,
) -> str:
    """``user:<id>`` for authenticated callers, else ``ip:<hash>``.

    The IP is hashed so raw addresses are never stored.
    """
    if user_id and str(user_id).strip():
        return f"user:{str(user_id).strip()}"
    ip = client_ip(headers, remote_addr)
    return "ip:" + hashlib.sha256(ip.encode("utf-8")).hexdigest()[:16]


class RateLimiter:
    """Allows at most ``limit`` requests per identity per ``window`` seconds.

    Counters are expiring rows in the transient store; an expired counter is
    treated as absent, so the next request opens a fresh window at 1.
    """

    def __init__(self, store: TransientStore, *, limit: int = 10, window: int = 60) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window < 1:
            raise ValueError("window must be >= 1")
        self.store = store
        self.limit = limit
        self.window = window

    def check_and_increment(self, identity: str) -> int:
        """Count one request for *identity* and return the count in this window.

        Raises:
            RateLimitExceeded: The identity already used up this window.
        """
        allowed, count, retry_after = self.store.hit(
            RATE_LIMIT_PREFIX + identity, self.limit, self.window
        )
        if not allowed:
            logger.warning(
                "Rate limit exceeded for %s (%d/%d, retry in %.0fs)",
                identity,
                count,
                self.limit,
                retry_after,
            )
            raise RateLimitExceeded(RATE_LIMIT_MESSAGE, retry_after=retry_after)
        return count

    def reset(self, identity: str | None = None) -> int:
        """Drop the counter for *identity*, or every counter when None."""
        if identity is None:
            return self.store.delete_prefix(RATE_LIMIT_PREFIX)
        return int(self.store.delete(RATE_LIMIT_PREFIX + identity))

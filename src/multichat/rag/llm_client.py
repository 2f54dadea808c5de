"""LiteLLM client with a response cache and bounded retry/backoff.

All completion calls on the chat path route through ``ApiClient.call``.
LiteLLM's own retry is disabled (num_retries=0); retries happen here so the
schedule and the set of retried errors are fixed:

- 401, 429, 400 and malformed 200 bodies fail immediately.
- Any other provider or transport failure is retried up to
  ``max_retries`` times, sleeping 1s, 2s, 4s, ... before each retry.

Successful answers are cached in the transient store under
``multichat_api_<sha256>`` for ``cache_ttl`` seconds.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from collections.abc import Callable, Mapping
from typing import Any

import litellm

from multichat.db.store import TransientStore
from multichat.errors import (
    EmptyInput,
    InvalidResponseFormat,
    MissingCredential,
    UpstreamAuthError,
    UpstreamError,
    UpstreamInvalidRequest,
    UpstreamRateLimit,
    UpstreamTransientError,
)

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

logger = logging.getLogger(__name__)

API_CACHE_PREFIX = "multichat_api_"

_OPTION_KEYS = frozenset(["model", "temperature", "max_tokens"])
_SECRET_RE = re.compile(r"\b(?:sk|key)-[A-Za-z0-9_\-*]{4,}")

def cache_key(system_message: str, user_message: str, options: Mapping[str, Any] | None = None) -> str:
    """Stable cache key for one prompt pair plus its generation options."""
    payload = json.dumps(
        [system_message, user_message, dict(sorted((options or {}).items()))],
        ensure_ascii=False,
        sort_keys=True,
        default=str,
    )
    return API_CACHE_PREFIX + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def redact(text: str, api_key: str = "") -> str:
    """Mask anything that looks like a credential in *text*."""
    if api_key:
        text = text.replace(api_key, "***")
    return _SECRET_RE.sub("***", text)


class ApiClient:
    """Completion client used by the chat orchestrator.

    Args:
        store: Transient store holding cached answers.
        model: LiteLLM model string (provider/model format).
        api_base: Optional endpoint override (OpenAI-compatible servers).
        temperature: Sampling temperature.
        max_tokens: Maximum output tokens.
        timeout: Per-attempt timeout in seconds.
        max_retries: Retries after the first attempt for transient failures.
        cache_ttl: Seconds a successful answer stays cached.
        sleep: Backoff sleep, injectable for tests.
    """

    def __init__(
        self,
        store: TransientStore,
        *,
        model: str = "openai/gpt-3.5-turbo",
        api_base: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1_000,
        timeout: float = 30,
        max_retries: int = 2,
        cache_ttl: int = 3_600,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.model = model
        self.api_base = api_base
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.cache_ttl = cache_ttl
        self._sleep = sleep

    def call(
        self,
        api_key: str,
        system_message: str,
        user_message: str,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Return the assistant's answer for the prompt pair.

        Args:
            api_key: Provider credential. Never logged.
            system_message: System instruction.
            user_message: End-user message.
            options: Per-call overrides of ``model``, ``temperature`` and
                ``max_tokens``. Part of the cache key.

        Raises:
            MissingCredential: *api_key* is empty.
            EmptyInput: *user_message* is empty.
            UpstreamError: A classified provider failure (see module docstring).
        """
        if not api_key or not api_key.strip():
            raise MissingCredential("API key is not configured")
        if not user_message or not user_message.strip():
            raise EmptyInput("Message must be a non-empty string")

        opts = {k: v for k, v in (options or {}).items() if k in _OPTION_KEYS}
        key = cache_key(system_message, user_message, opts)
        cached = self.store.get(key)
        if isinstance(cached, str):
            logger.debug("Response cache hit %s", key[len(API_CACHE_PREFIX):][:12])
            return cached

        messages = [
            {"role": "system", "content": system_message},
            {"role": "user", "content": user_message},
        ]

        last_error: UpstreamError | None = None
        for retry in range(self.max_retries + 1):
            if retry:
                delay = 2 ** (retry - 1)
                logger.warning(
                    "Retrying completion in %ds (retry %d/%d): %s",
                    delay,
                    retry,
                    self.max_retries,
                    last_error,
                )
                self._sleep(delay)

            logger.debug("Completion attempt %d/%d", retry + 1, self.max_retries + 1)
            try:
                answer = self._complete(api_key, messages, opts)
            except UpstreamError as exc:
                if not exc.retryable:
                    logger.error("Completion failed (%s): %s", exc.kind, exc)
                    raise
                last_error = exc
                continue

            self.store.set(key, answer, ttl=self.cache_ttl)
            return answer

        assert last_error is not None
        logger.error(
            "Completion failed after %d attempts (%s): %s",
            self.max_retries + 1,
            last_error.kind,
            last_error,
        )
        raise last_error

    def clear_cache(self) -> int:
        """Delete every cached answer written by this client. Returns rows removed."""
        removed = self.store.delete_prefix(API_CACHE_PREFIX)
        logger.info("Cleared %d cached responses", removed)
        return removed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _complete(self, api_key: str, messages: list[dict], opts: Mapping[str, Any]) -> str:
        """One attempt. Translates provider failures into UpstreamError subclasses."""
        kwargs: dict[str, Any] = {
            "model": opts.get("model", self.model),
            "messages": messages,
            "temperature": opts.get("temperature", self.temperature),
            "max_tokens": opts.get("max_tokens", self.max_tokens),
            "timeout": self.timeout,
            "api_key": api_key,
            "num_retries": 0,
        }
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = litellm.completion(**kwargs)
        except litellm.AuthenticationError as exc:
            raise UpstreamAuthError(redact(str(exc), api_key), upstream_status=401) from exc
        except litellm.RateLimitError as exc:
            raise UpstreamRateLimit(redact(str(exc), api_key), upstream_status=429) from exc
        except litellm.BadRequestError as exc:
            raise UpstreamInvalidRequest(redact(str(exc), api_key), upstream_status=400) from exc
        except Exception as exc:
            # 5xx, 403, 422, timeouts and connection failures all retry.
            raise UpstreamTransientError(
                redact(str(exc), api_key),
                upstream_status=getattr(exc, "status_code", None),
            ) from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError):
            content = None
        if not isinstance(content, str):
            logger.error("Malformed completion response: %r", response)
            raise InvalidResponseFormat("Invalid response format from API", upstream_status=200)
        return content

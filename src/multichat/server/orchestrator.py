"""Chat request orchestration.

Stages run strictly in order and any error jumps straight to the response:

    RECEIVED → RATE_LIMIT_CHECKED → CREDENTIAL_CHECKED → KB_RESOLVED
             → PROMPT_BUILT → API_CALLED → RESPONDED
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from multichat.errors import (
    MissingCredential,
    MultichatError,
    RateLimitExceeded,
    UpstreamError,
    ValidationError,
)
from multichat.rag.assembler import build_system_prompt
from multichat.rag.knowledge import KnowledgeResolver
from multichat.rag.llm_client import ApiClient
from multichat.server.language import DefaultLanguageResolver, LanguageResolver
from multichat.server.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Sorry, there was an error processing your request. Please try again later."
MISSING_KEY_MESSAGE = "ChatGPT API key is not configured. Please contact the site administrator."


class Stage(enum.Enum):
    RECEIVED = "received"
    RATE_LIMIT_CHECKED = "rate_limit_checked"
    CREDENTIAL_CHECKED = "credential_checked"
    KB_RESOLVED = "kb_resolved"
    PROMPT_BUILT = "prompt_built"
    API_CALLED = "api_called"
    RESPONDED = "responded"


@dataclass
class ChatRequest:
    """Raw inbound request. ``message`` and ``language`` are validated by the service."""

    message: Any
    language: Any = None
    identity: str = "ip:unknown"


@dataclass
class ChatResult:
    """Outcome of one chat request.

    Attributes:
        success: True when ``message`` is the assistant's answer.
        message: Answer text, or a message safe to show the end user.
        status: HTTP-equivalent status.
        stage: Last stage reached before responding.
        error_kind: Error tag on failure.
        error_detail: Redacted provider error text on upstream failures.
        retry_after: Seconds until the rate-limit window resets (429 only).
    """

    success: bool
    message: str
    status: int = 200
    stage: Stage = Stage.RESPONDED
    error_kind: str | None = None
    error_detail: str | None = None
    retry_after: float | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success, "message": self.message}
        if not self.success and self.error_kind:
            body["error"] = {"kind": self.error_kind}
            if self.error_detail:
                body["error"]["detail"] = self.error_detail
        return body


class ChatService:
    """Runs one chat request through validation, rate limiting, retrieval and generation.

    All collaborators are injected; ``api_key_provider`` is consulted on every
    request so a rotated key takes effect without a restart.
    """

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        knowledge: KnowledgeResolver,
        client: ApiClient,
        api_key_provider: Callable[[], str],
        language_resolver: LanguageResolver | None = None,
        languages: Sequence[str] = ("en", "ar", "es", "fr"),
        max_message_length: int = 2_000,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.knowledge = knowledge
        self.client = client
        self.api_key_provider = api_key_provider
        self.language_resolver = language_resolver or DefaultLanguageResolver(languages[0])
        self.languages = list(languages)
        self.max_message_length = max_message_length

    def handle(self, request: ChatRequest) -> ChatResult:
        stage = Stage.RECEIVED
        try:
            message, language = self._validate(request)

            self.rate_limiter.check_and_increment(request.identity)
            stage = Stage.RATE_LIMIT_CHECKED

            api_key = self.api_key_provider() or ""
            if not api_key.strip():
                raise MissingCredential(MISSING_KEY_MESSAGE)
            stage = Stage.CREDENTIAL_CHECKED

            chunks = self.knowledge.resolve(message, language)
            stage = Stage.KB_RESOLVED
            logger.debug("Resolved %d knowledge chunks for '%s'", len(chunks), language)

            system_message = build_system_prompt(language, chunks)
            stage = Stage.PROMPT_BUILT

            answer = self.client.call(api_key, system_message, message)
        except RateLimitExceeded as exc:
            return ChatResult(
                success=False,
                message=exc.message,
                status=exc.status,
                stage=stage,
                error_kind=exc.kind,
                retry_after=exc.retry_after,
            )
        except UpstreamError as exc:
            return ChatResult(
                success=False,
                message=GENERIC_ERROR_MESSAGE,
                status=exc.status,
                stage=stage,
                error_kind=exc.kind,
                error_detail=exc.message or None,
            )
        except MissingCredential as exc:
            logger.error("Chat request rejected: API key is not configured")
            return ChatResult(
                success=False, message=exc.message, status=exc.status, stage=stage, error_kind=exc.kind
            )
        except MultichatError as exc:
            return ChatResult(
                success=False, message=exc.message, status=exc.status, stage=stage, error_kind=exc.kind
            )

        return ChatResult(success=True, message=answer, status=200, stage=Stage.RESPONDED)

    def _validate(self, request: ChatRequest) -> tuple[str, str]:
        message = request.message
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message must be a non-empty string")
        message = message.strip()
        if len(message) > self.max_message_length:
            raise ValidationError(
                f"Message must not exceed {self.max_message_length} characters"
            )

        requested = request.language
        if requested is not None and not isinstance(requested, str):
            raise ValidationError(self._language_error())
        language = self.language_resolver.resolve(requested)
        if language not in self.languages:
            raise ValidationError(self._language_error())
        return message, language

    def _language_error(self) -> str:
        return f"Language must be one of: {', '.join(self.languages)}"

"""Error taxonomy for the chat path.

Every error carries a ``kind`` tag and the HTTP-equivalent ``status`` it maps
to. Messages on these exceptions are safe to show to end users; they never
contain credentials.
"""

from __future__ import annotations


class MultichatError(Exception):
    """Base class for errors that terminate a chat request."""

    kind: str = "error"
    status: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MultichatError):
    """Bad input shape, length or language."""

    kind = "validation"
    status = 400


class EmptyInput(ValidationError):
    kind = "empty_input"


class RateLimitExceeded(MultichatError):
    """Caller exceeded the per-identity request threshold."""

    kind = "rate_limited"
    status = 429

    def __init__(self, message: str = "", retry_after: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class MissingCredential(MultichatError):
    """No API credential configured."""

    kind = "missing_credential"
    status = 500


class UpstreamError(MultichatError):
    """The completion provider call failed.

    Attributes:
        retryable: Whether the API client may attempt the call again.
        upstream_status: HTTP status reported by the provider, if any.
    """

    kind = "upstream_error"
    status = 500
    retryable: bool = False

    def __init__(self, message: str = "", upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamAuthError(UpstreamError):
    kind = "upstream_auth"


class UpstreamRateLimit(UpstreamError):
    kind = "upstream_rate_limit"


class UpstreamInvalidRequest(UpstreamError):
    kind = "upstream_invalid_request"


class UpstreamTransientError(UpstreamError):
    """Network failure or 5xx; retried inside the API client."""

    kind = "upstream_transient"
    retryable = True


class InvalidResponseFormat(UpstreamError):
    """200 response without the expected message field."""

    kind = "invalid_response_format"


class ScanError(MultichatError):
    """An administrative scan indexed nothing. Never raised on the chat path."""

    kind = "scan_failed"
    status = 500

"""Language resolution for chat requests."""

from __future__ import annotations

from typing import Protocol


class LanguageResolver(Protocol):
    """Decides the response language for a request.

    Receives the language the caller asked for (possibly None) and returns a
    language code. Validation against the enabled languages happens after.
    """

    def resolve(self, requested: str | None) -> str: ...


class DefaultLanguageResolver:
    """Use the requested code, else a fixed default."""

    def __init__(self, default: str = "en") -> None:
        self.default = default

    def resolve(self, requested: str | None) -> str:
        if requested is None:
            return self.default
        code = str(requested).strip().lower()
        return code or self.default

"""Base chunker interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from multichat.db.models import Chunk


class BaseChunker(ABC):
    """Abstract base for chunkers.

    Subclasses implement ``chunk()`` and may use ``_split_fixed_window()``
    for text that has no usable boundaries. Sizes are in characters.
    """

    def __init__(self, max_chunk_size: int = 500) -> None:
        if max_chunk_size < 1:
            raise ValueError("max_chunk_size must be >= 1")
        self.max_chunk_size = max_chunk_size

    @abstractmethod
    def chunk(self, content: str, source_url: str = "", title: str = "") -> list[Chunk]:
        """Split *content* into Chunk objects, each at most ``max_chunk_size`` long.

        Args:
            content: Extracted page text.
            source_url: URL the text came from (copied onto every chunk).
            title: Page title (copied onto every chunk).

        Returns:
            Ordered list of Chunk objects.
        """

    def _split_fixed_window(self, text: str) -> list[str]:
        """Split *text* into consecutive windows of ``max_chunk_size`` characters.

        Segments are stripped; empty segments are omitted.
        """
        size = self.max_chunk_size
        segments = [text[pos:pos + size].strip() for pos in range(0, len(text), size)]
        return [s for s in segments if s]

    @staticmethod
    def _make_chunks(texts: list[str], source_url: str, title: str) -> list[Chunk]:
        return [Chunk.create(t, source_url=source_url, title=title) for t in texts]

"""Sentence-boundary chunker."""

from __future__ import annotations

import re

from multichat.db.models import Chunk
from multichat.ingest.base import BaseChunker

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class SentenceChunker(BaseChunker):
    """Greedily pack whole sentences into chunks of at most ``max_chunk_size``.

    A sentence that alone exceeds the limit is cut into fixed windows so the
    size bound always holds. Sentences are joined with a single space.
    """

    def chunk(self, content: str, source_url: str = "", title: str = "") -> list[Chunk]:
        if not content.strip():
            return []

        sentences = [s.strip() for s in _SENTENCE_BOUNDARY.split(content) if s.strip()]
        if not sentences:
            return self._make_chunks(
                [content.strip()[: self.max_chunk_size]], source_url, title
            )

        texts: list[str] = []
        buffer = ""
        for sentence in sentences:
            candidate = f"{buffer} {sentence}" if buffer else sentence
            if len(candidate) <= self.max_chunk_size:
                buffer = candidate
                continue
            if buffer:
                texts.append(buffer)
            if len(sentence) <= self.max_chunk_size:
                buffer = sentence
            else:
                pieces = self._split_fixed_window(sentence)
                texts.extend(pieces[:-1])
                buffer = pieces[-1] if pieces else ""
        if buffer:
            texts.append(buffer)

        return self._make_chunks(texts, source_url, title)

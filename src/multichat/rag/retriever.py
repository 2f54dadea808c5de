"""Keyword relevance ranker.

score(chunk) = number of distinct query terms (lowercased, punctuation
trimmed, longer than 3 characters) that occur as substrings of the chunk's
lowercased text + title. Chunks scoring 0 are never returned. Equal scores
keep their original order.
"""

from __future__ import annotations

import string
from collections.abc import Sequence
from dataclasses import dataclass

from multichat.db.models import Chunk

MIN_TERM_LENGTH = 4
DEFAULT_TOP_N = 3


@dataclass
class ScoredChunk:
    """A candidate chunk with its overlap score and position in the input."""

    chunk: Chunk
    score: int
    position: int


def query_terms(query: str) -> list[str]:
    """Distinct significant terms of *query*, in first-seen order."""
    terms: dict[str, None] = {}
    for word in query.lower().split():
        word = word.strip(string.punctuation + "¿¡«»“”‘’")
        if len(word) >= MIN_TERM_LENGTH:
            terms.setdefault(word, None)
    return list(terms)


def score_chunks(query: str, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
    """Score every chunk with at least one matching term, best first."""
    terms = query_terms(query)
    if not terms:
        return []

    scored: list[ScoredChunk] = []
    for position, chunk in enumerate(chunks):
        haystack = f"{chunk.text} {chunk.title}".lower()
        score = sum(1 for term in terms if term in haystack)
        if score > 0:
            scored.append(ScoredChunk(chunk=chunk, score=score, position=position))

    # sort() is stable, so ties stay in input order
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored


def rank(query: str, chunks: Sequence[Chunk], top_n: int = DEFAULT_TOP_N) -> list[Chunk]:
    """Return up to *top_n* chunks most relevant to *query*."""
    if top_n <= 0:
        return []
    return [s.chunk for s in score_chunks(query, chunks)[:top_n]]

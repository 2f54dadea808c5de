"""Tests for the keyword relevance ranker."""

from __future__ import annotations

from multichat.db.models import Chunk
from multichat.rag.knowledge import fallback_chunks
from multichat.rag.retriever import query_terms, rank, score_chunks


def _chunk(text: str, title: str = "") -> Chunk:
    return Chunk.create(text, title=title)


def test_query_terms_filters_short_words_and_punctuation():
    assert query_terms("What are your HOURS?") == ["what", "your", "hours"]


def test_query_terms_distinct():
    assert query_terms("shipping shipping, Shipping!") == ["shipping"]


def test_query_terms_only_short_words():
    assert query_terms("is it ok?") == []


def test_rank_orders_by_overlap():
    chunks = fallback_chunks("en")
    top = rank("What are your hours?", chunks, top_n=3)

    assert top[0].text.startswith("Our business hours are Monday to Friday")
    assert [c.title for c in top] == [
        "What are your business hours?",
        "What is your return policy?",
        "What payment methods do you accept?",
    ]


def test_rank_matches_title_as_well_as_text():
    chunks = [_chunk("Nothing relevant here."), _chunk("Body text.", title="Refund policy")]
    assert rank("refund please", chunks) == [chunks[1]]


def test_rank_ties_keep_input_order():
    chunks = [_chunk(f"Delivery option {i}.") for i in range(5)]
    assert rank("delivery", chunks, top_n=3) == chunks[:3]


def test_rank_no_match_returns_empty():
    chunks = [_chunk("Our warehouse is in Ohio.")]
    assert rank("unrelated question", chunks) == []


def test_rank_no_significant_terms_returns_empty():
    assert rank("hi", fallback_chunks("en")) == []


def test_rank_top_n_zero():
    assert rank("hours", fallback_chunks("en"), top_n=0) == []


def test_rank_is_deterministic():
    chunks = fallback_chunks("en")
    first = rank("contact support email", chunks)
    assert all(rank("contact support email", chunks) == first for _ in range(5))


def test_score_chunks_counts_distinct_terms():
    chunks = [_chunk("shipping shipping shipping"), _chunk("shipping costs explained")]
    scored = score_chunks("shipping costs", chunks)
    assert [(s.position, s.score) for s in scored] == [(1, 2), (0, 1)]

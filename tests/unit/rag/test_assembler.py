"""Tests for system prompt assembly."""

from __future__ import annotations

import pytest

from multichat.db.models import Chunk
from multichat.rag.assembler import (
    NO_KNOWLEDGE,
    build_system_prompt,
    format_knowledge,
    language_name,
)


@pytest.mark.parametrize(
    "code,name",
    [("en", "English"), ("ar", "Arabic"), ("es", "Spanish"), ("fr", "French"), ("DE", "German")],
)
def test_language_name(code, name):
    assert language_name(code) == name


def test_unknown_language_falls_back_to_english():
    assert language_name("xx") == "English"


def test_format_knowledge_empty():
    assert format_knowledge([]) == NO_KNOWLEDGE


def test_format_knowledge_titled_items():
    chunks = [
        Chunk.create("Open 9 to 6.", title="Hours"),
        Chunk.create("Untitled entry."),
    ]
    assert format_knowledge(chunks) == (
        "RELEVANT INFORMATION:\n\n- Hours: Open 9 to 6.\n- Info: Untitled entry."
    )


def test_format_knowledge_truncates_items():
    text = "a" * 800
    out = format_knowledge([Chunk.create(text, title="Long")])
    assert out.endswith("- Long: " + "a" * 500)


def test_format_knowledge_untitled_paragraphs():
    chunks = [Chunk.create("First."), Chunk.create("Second.")]
    assert format_knowledge(chunks) == "First.\n\nSecond."


def test_build_system_prompt(hours_chunk):
    prompt = build_system_prompt("en", [hours_chunk])

    assert prompt.startswith(
        "You are a helpful customer support assistant. Answer only in English. "
        "Use the provided knowledge base to answer questions accurately and helpfully.\n\n"
        "KNOWLEDGE BASE:\n"
    )
    assert "- Contact: Our business hours are Monday to Friday, 9 AM to 6 PM EST." in prompt
    assert prompt.endswith(
        "If the user's question is not covered in the knowledge base, politely let them "
        "know and offer to connect them with a human agent."
    )


def test_build_system_prompt_without_knowledge():
    prompt = build_system_prompt("fr", [])
    assert "Answer only in French." in prompt
    assert f"KNOWLEDGE BASE:\n{NO_KNOWLEDGE}\n\n" in prompt

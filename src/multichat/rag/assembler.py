"""System prompt assembly."""

from __future__ import annotations

from collections.abc import Sequence

from multichat.db.models import Chunk

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "ar": "Arabic",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "zh": "Chinese",
    "ja": "Japanese",
}

MAX_CHUNK_CHARS = 500
NO_KNOWLEDGE = "No relevant knowledge base available."

_TEMPLATE = (
    "You are a helpful customer support assistant. Answer only in {language}. "
    "Use the provided knowledge base to answer questions accurately and helpfully.\n\n"
    "KNOWLEDGE BASE:\n{knowledge}\n\n"
    "If the user's question is not covered in the knowledge base, politely let them "
    "know and offer to connect them with a human agent."
)


def language_name(code: str) -> str:
    """Human-readable name for *code*; unknown codes fall back to English."""
    return LANGUAGE_NAMES.get(code.lower(), LANGUAGE_NAMES["en"])


def format_knowledge(chunks: Sequence[Chunk]) -> str:
    """Render *chunks* as the KNOWLEDGE BASE section body.

    Titled chunks are listed as ``- title: text`` with text cut to 500
    characters; untitled chunks are joined as paragraphs.
    """
    if not chunks:
        return NO_KNOWLEDGE
    if any(c.title for c in chunks):
        items = "".join(f"\n- {c.title or 'Info'}: {c.text[:MAX_CHUNK_CHARS]}" for c in chunks)
        return "RELEVANT INFORMATION:\n" + items
    return "\n\n".join(c.text for c in chunks)


def build_system_prompt(language: str, chunks: Sequence[Chunk]) -> str:
    """Return the system instruction for *language* grounded on *chunks*."""
    return _TEMPLATE.format(language=language_name(language), knowledge=format_knowledge(chunks))

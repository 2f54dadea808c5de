"""Multichat retrieval and generation: ranking, prompt assembly, completion client."""

from multichat.rag.assembler import build_system_prompt, language_name
from multichat.rag.knowledge import KnowledgeResolver, fallback_chunks
from multichat.rag.llm_client import ApiClient
from multichat.rag.retriever import rank

__all__ = [
    "ApiClient",
    "KnowledgeResolver",
    "build_system_prompt",
    "fallback_chunks",
    "language_name",
    "rank",
]

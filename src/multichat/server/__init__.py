"""Multichat request serving: rate limiting, orchestration, HTTP app."""

from multichat.server.api import build_app, create_app
from multichat.server.factory import Components, build_components
from multichat.server.orchestrator import ChatRequest, ChatResult, ChatService
from multichat.server.rate_limit import RateLimiter, client_identity

__all__ = [
    "ChatRequest",
    "ChatResult",
    "ChatService",
    "Components",
    "RateLimiter",
    "build_app",
    "build_components",
    "client_identity",
    "create_app",
]

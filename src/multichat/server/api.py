"""HTTP surface: ``POST /ask``, ``GET /faqs``, ``GET /health``."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from multichat import __version__
from multichat.config import MultichatConfig
from multichat.db.connection import Database
from multichat.db.repository import FaqRepository
from multichat.db.schema import initialize
from multichat.server.factory import build_components
from multichat.server.orchestrator import GENERIC_ERROR_MESSAGE, ChatRequest, ChatService
from multichat.server.rate_limit import client_identity

logger = logging.getLogger(__name__)


class AskRequest(BaseModel):
    # Types are checked by ChatService so bad input gets the same 400 shape.
    model_config = ConfigDict(extra="ignore")

    message: Any = None
    language: Any = None


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.service


def get_faq_repository(request: Request) -> FaqRepository | None:
    return request.app.state.faqs


def create_app(
    service: ChatService,
    faqs: FaqRepository | None = None,
    *,
    user_id_header: str | None = None,
) -> FastAPI:
    """Build the FastAPI app around an already wired ChatService.

    Args:
        service: Chat orchestrator.
        faqs: FAQ store for ``GET /faqs`` (endpoint returns an empty list if None).
        user_id_header: Header carrying an authenticated user id set by a
            trusted upstream proxy. When absent, callers are identified by IP.
    """
    app = FastAPI(title="multichat", version=__version__)
    app.state.service = service
    app.state.faqs = faqs
    app.state.user_id_header = user_id_header

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Request body must be a JSON object"},
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": GENERIC_ERROR_MESSAGE})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/ask")
    def ask(
        payload: AskRequest,
        request: Request,
        chat: ChatService = Depends(get_chat_service),
    ) -> JSONResponse:
        header = request.app.state.user_id_header
        user_id = request.headers.get(header) if header else None
        identity = client_identity(
            request.headers,
            request.client.host if request.client else None,
            user_id,
        )
        result = chat.handle(
            ChatRequest(message=payload.message, language=payload.language, identity=identity)
        )
        headers = {}
        if result.retry_after is not None:
            headers["Retry-After"] = str(max(1, math.ceil(result.retry_after)))
        return JSONResponse(status_code=result.status, content=result.to_dict(), headers=headers)

    @app.get("/faqs")
    def list_faqs(
        language: str | None = Query(default=None),
        repo: FaqRepository | None = Depends(get_faq_repository),
    ) -> list[dict[str, Any]]:
        if repo is None:
            return []
        return [
            {"id": f.id, "title": f.title, "content": f.content, "language": f.language, "url": f.url}
            for f in repo.list(language)
        ]

    return app


def build_app(cfg: MultichatConfig, *, user_id_header: str | None = None) -> FastAPI:
    """Open the configured database and return a fully wired app.

    The connection stays open for the life of the process.
    """
    conn = Database(Path(cfg.storage.path)).connect()
    initialize(conn)
    components = build_components(cfg, conn)
    return create_app(components.service, components.faqs, user_id_header=user_id_header)

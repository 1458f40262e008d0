"""REST API routes for the song prompt chat."""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from songchat.agent.prompt_engine import reconcile
from songchat.models.song_prompt import ChatRequest, ChatResponse
from songchat.services.chat_relay import ChatRelay
from songchat.services.completion_service import GeminiCompletionClient, StubCompletionClient
from songchat.services.errors import GENERIC_UPSTREAM_MESSAGE, ChatError

log = logging.getLogger(__name__)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes"}


def make_default_relay() -> ChatRelay:
    """Build a relay from the environment (``USE_MOCK_COMPLETIONS``, ``GEMINI_*``)."""
    if _env_flag("USE_MOCK_COMPLETIONS"):
        log.info("Using stub completions (USE_MOCK_COMPLETIONS is set)")
        return ChatRelay(StubCompletionClient())
    return ChatRelay(GeminiCompletionClient())


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"Invalid request body: {location}: {message}" if location else f"Invalid request body: {message}"


def create_app(relay: ChatRelay | None = None, debug: bool = False) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        relay: Relay used for completions. Defaults to one built from the environment.
        debug: If True, log full traces of every turn's extraction.
    """
    app = FastAPI(
        title="SongChat API",
        description="Chat with Gemini while a structured song prompt is built from the conversation",
        version="0.1.0",
    )
    app.state.relay = relay if relay is not None else make_default_relay()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # the chat UI is served from a different origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatError)
    async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _describe_validation_error(exc)})

    @app.post("/api/chat")
    async def chat(body: ChatRequest) -> JSONResponse:
        """
        Send the conversation to Gemini and update the song prompt.

        Args:
            body: ``messages`` (ending with a user turn) and the optional ``currentPrompt``

        Returns:
            ``{"content": ..., "prompt": ...}``; ``prompt`` is omitted while still empty
        """
        relay: ChatRelay = app.state.relay
        try:
            completion = await relay.complete(body.messages)
        except ChatError as e:
            log.warning("Chat request failed (%d): %s", e.status_code, e.message)
            raise
        except Exception as e:
            log.error(f"Unexpected error calling the completion API: {e}", exc_info=True)
            return JSONResponse(status_code=500, content={"error": GENERIC_UPSTREAM_MESSAGE})

        display_text, new_prompt = reconcile(
            completion,
            body.messages[-1].content,
            body.current_prompt,
            debug=debug,
        )
        response = ChatResponse(content=display_text, prompt=new_prompt)
        return JSONResponse(content=response.to_dict())

    @app.get("/api/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "ok"}

    return app

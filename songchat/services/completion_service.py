from __future__ import annotations

import json
import logging
import os
from typing import Protocol, runtime_checkable

from google import genai
from google.genai import types

from songchat.agent.prompts import PROMPT_END_MARKER, PROMPT_START_MARKER
from songchat.models.song_prompt import SongPrompt, Turn
from songchat.services.errors import MissingCredentialError

log = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-1.5-flash-latest"

# Conversation roles mapped onto Gemini's content roles.
GEMINI_ROLES = {"user": "user", "assistant": "model"}


@runtime_checkable
class CompletionClient(Protocol):
    """Interface for chat completion backends.

    ``history`` holds every turn before the new message; the system
    instruction is passed separately and never becomes part of the history.
    """

    model_name: str

    async def generate(
        self, history: list[Turn], message: str, system_instruction: str
    ) -> str: ...


def to_gemini_history(history: list[Turn]) -> list[types.Content]:
    """Convert conversation turns into Gemini ``Content`` objects."""
    return [
        types.Content(
            role=GEMINI_ROLES[turn.role],
            parts=[types.Part.from_text(text=turn.content)],
        )
        for turn in history
    ]


class GeminiCompletionClient:
    """Completion client backed by the Gemini API (``google-genai``).

    The API key defaults to ``GEMINI_API_KEY`` and the model to ``GEMINI_MODEL``.
    A missing key is reported before any network call is made.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.environ.get("GEMINI_API_KEY", "")
        self.model_name = (
            model_name or os.environ.get("GEMINI_MODEL", "").strip() or DEFAULT_MODEL_NAME
        )
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise MissingCredentialError()
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self, history: list[Turn], message: str, system_instruction: str
    ) -> str:
        client = self._get_client()
        chat = client.aio.chats.create(
            model=self.model_name,
            config=types.GenerateContentConfig(system_instruction=system_instruction),
            history=to_gemini_history(history),
        )
        response = await chat.send_message(message)
        return response.text


def get_mock_prompt() -> SongPrompt:
    """Return a fixed song prompt used by the stub client."""
    return SongPrompt.model_validate(
        {
            "title": "Night Shift",
            "style": {
                "genre": ["house"],
                "mood": ["dark", "energetic"],
                "vocals": "chopped male vocal samples",
                "tempo": "124bpm",
                "instruments": ["909 drums", "rolling bass synth", "stab chords"],
            },
            "structure": {
                "sections": [
                    {"type": "intro", "duration": "16 bars"},
                    {"type": "build", "duration": "16 bars"},
                    {"type": "drop", "duration": "32 bars"},
                    {"type": "outro", "duration": "16 bars"},
                ]
            },
            "references": {"similar_to": ["Dirtybird"], "era": "2010s"},
            "production": {"energy": "high", "production_style": "tight, bass-forward club mix"},
        }
    )


class StubCompletionClient:
    """Returns a canned reply with a well-formed prompt block instead of calling Gemini.

    Every call is recorded in ``calls`` as ``(history, message, system_instruction)``.
    """

    model_name = "stub"

    def __init__(self, reply: str | None = None, prompt: SongPrompt | None = None) -> None:
        self.reply = reply
        self.prompt = prompt if prompt is not None else get_mock_prompt()
        self.calls: list[tuple[list[Turn], str, str]] = []

    async def generate(
        self, history: list[Turn], message: str, system_instruction: str
    ) -> str:
        self.calls.append((list(history), message, system_instruction))
        if self.reply is not None:
            return self.reply
        log.info("[StubCompletionClient] Replying to: %s", message[:80])
        block = json.dumps(self.prompt.to_dict(), indent=2)
        return (
            "Here's where the track stands so far. Tell me what to change!\n"
            f"{PROMPT_START_MARKER}\n{block}\n{PROMPT_END_MARKER}"
        )

"""Relay a chat transcript to the completion API."""

from __future__ import annotations

import logging
import time

from songchat.agent.prompts import SYSTEM_INSTRUCTION
from songchat.models.song_prompt import Turn
from songchat.services.completion_service import CompletionClient
from songchat.services.errors import ChatError, InvalidInputError, UpstreamError

log = logging.getLogger(__name__)


def validate_transcript(transcript: list[Turn]) -> None:
    """Raise InvalidInputError unless the transcript is non-empty and ends with a user turn."""
    if not transcript:
        raise InvalidInputError("messages must contain at least one message")
    if transcript[-1].role != "user":
        raise InvalidInputError("the last message must have role 'user'")


def _upstream_message(exc: Exception) -> str | None:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message.strip():
        return message
    text = str(exc).strip()
    return text or None


class ChatRelay:
    """Sends a transcript to a completion client and returns the raw reply text.

    One call per ``complete``; failures are never retried.
    """

    def __init__(
        self,
        client: CompletionClient,
        system_instruction: str = SYSTEM_INSTRUCTION,
    ) -> None:
        self.client = client
        self.system_instruction = system_instruction

    async def complete(
        self, transcript: list[Turn], system_instruction: str | None = None
    ) -> str:
        validate_transcript(transcript)

        history = transcript[:-1]
        message = transcript[-1].content
        instruction = system_instruction if system_instruction is not None else self.system_instruction

        start = time.time()
        try:
            text = await self.client.generate(history, message, instruction)
        except ChatError:
            raise
        except Exception as e:
            log.error("Completion request failed: %s", e, exc_info=True)
            raise UpstreamError(_upstream_message(e)) from e

        if not isinstance(text, str) or not text.strip():
            raise UpstreamError("Gemini returned an empty response")

        log.info(
            "Completion from %s in %.2fs (%d history turns, %d chars)",
            getattr(self.client, "model_name", "unknown"),
            time.time() - start,
            len(history),
            len(text),
        )
        return text

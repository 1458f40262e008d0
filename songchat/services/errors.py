"""Errors surfaced by the chat endpoint, each carrying its HTTP status."""

from __future__ import annotations

GENERIC_UPSTREAM_MESSAGE = "Failed to get response from Gemini"
MISSING_CREDENTIAL_MESSAGE = "GEMINI_API_KEY is not set"


class ChatError(RuntimeError):
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(ChatError):
    """The transcript is empty or does not end with a user turn."""

    status_code = 400


class MissingCredentialError(ChatError):
    """No Gemini API key is configured."""

    def __init__(self, message: str = MISSING_CREDENTIAL_MESSAGE) -> None:
        super().__init__(message)


class UpstreamError(ChatError):
    """The completion API failed or returned something unusable."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or GENERIC_UPSTREAM_MESSAGE)


class PayloadParseError(ValueError):
    """A delimited prompt block is present but is not a valid prompt fragment."""

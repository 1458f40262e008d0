"""Structured song prompt built up incrementally from a chat conversation."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _wrap_string(value: Any) -> Any:
    """Accept a bare string where a list of strings is expected."""
    if isinstance(value, str):
        return [value]
    return value


class Style(BaseModel):
    """Musical style of the song."""
    genre: list[str] | None = Field(default=None, description="Genres, e.g. ['house', 'techno']")
    mood: list[str] | None = Field(default=None, description="Moods, e.g. ['dark', 'energetic']")
    vocals: str | None = Field(default=None, description="Vocal description, e.g. 'female, breathy'")
    tempo: str | None = Field(default=None, description="Tempo, e.g. '124bpm' or 'fast'")
    instruments: list[str] | None = Field(default=None, description="Key instruments")

    @field_validator("genre", "mood", "instruments", mode="before")
    @classmethod
    def wrap_single_string(cls, value: Any) -> Any:
        return _wrap_string(value)


class Section(BaseModel):
    """One section of the song (verse, chorus, drop...)."""
    type: str | None = Field(default=None, description="Section type, e.g. 'verse'")
    lyrics: str | None = Field(default=None, description="Lyrics for this section")
    duration: str | None = Field(default=None, description="Duration, e.g. '16 bars'")


class Structure(BaseModel):
    """Song structure as an ordered list of sections."""
    sections: list[Section] | None = None


class References(BaseModel):
    """Artists, labels or eras the song should resemble."""
    similar_to: list[str] | None = Field(default=None, description="Similar artists or labels")
    era: str | None = Field(default=None, description="Era, e.g. 'late 90s'")

    @field_validator("similar_to", mode="before")
    @classmethod
    def wrap_single_string(cls, value: Any) -> Any:
        return _wrap_string(value)


class Production(BaseModel):
    """Production metadata."""
    energy: str | None = Field(default=None, description="Energy level: 'high', 'medium' or 'low'")
    production_style: str | None = Field(default=None, description="Production style, e.g. 'lo-fi'")


class SongPrompt(BaseModel):
    """Partial song description. Every field is optional; absence means "not yet known".

    Only fields that were actually provided are serialized, so always dump with
    ``exclude_unset=True`` (see :meth:`to_dict`).
    """
    title: str | None = None
    lyrics: str | None = None
    style: Style | None = None
    structure: Structure | None = None
    references: References | None = None
    production: Production | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Summer Days",
                "style": {
                    "genre": ["house"],
                    "mood": ["happy", "energetic"],
                    "tempo": "124bpm",
                    "instruments": ["909 drums", "bass synth"],
                },
                "structure": {
                    "sections": [
                        {"type": "intro", "duration": "16 bars"},
                        {"type": "drop", "duration": "32 bars"},
                    ]
                },
                "references": {"similar_to": ["Dirtybird"]},
                "production": {"energy": "high"},
            }
        }
    )

    def to_dict(self) -> dict[str, Any]:
        """Dump only the fields that are known."""
        return self.model_dump(exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.to_dict()


class Turn(BaseModel):
    """One message in the conversation."""
    role: Literal["user", "assistant"]
    content: str


class Provenance(str, Enum):
    """Where an extracted prompt fragment came from."""
    MODEL_DECLARED = "model-declared"
    KEYWORD_FALLBACK = "keyword-fallback"
    UNCHANGED = "unchanged"


class ExtractionResult(BaseModel):
    """A prompt fragment plus the provenance that decides how it is merged."""
    fragment: SongPrompt | None = None
    source: Provenance = Provenance.UNCHANGED


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""
    messages: list[Turn]
    current_prompt: SongPrompt | None = Field(default=None, alias="currentPrompt")

    model_config = ConfigDict(populate_by_name=True)


class ChatResponse(BaseModel):
    """Successful chat reply; ``prompt`` is omitted while nothing is known yet."""
    content: str
    prompt: SongPrompt | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"content": self.content}
        if self.prompt is not None and not self.prompt.is_empty():
            body["prompt"] = self.prompt.to_dict()
        return body

"""Debug tracing utilities for a chat turn."""

from __future__ import annotations

import json
import logging
from typing import Any

from songchat.models.song_prompt import ExtractionResult, SongPrompt, Turn

log = logging.getLogger(__name__)


def _format_value(value: Any, max_length: int | None = 300) -> str:
    """Format a value for display, truncating if needed."""
    if isinstance(value, str):
        s = value
    elif isinstance(value, SongPrompt):
        s = json.dumps(value.to_dict(), indent=2)
    elif isinstance(value, dict):
        s = json.dumps(value, indent=2, default=str)
    else:
        s = str(value)

    if max_length is not None and len(s) > max_length:
        return s[:max_length] + f"\n... (truncated {len(s) - max_length} chars)"
    return s


def trace_transcript(transcript: list[Turn]) -> None:
    """Log every turn sent to the completion API."""
    log.debug("=" * 80)
    log.debug("CONVERSATION TRANSCRIPT")
    log.debug("=" * 80)
    for i, turn in enumerate(transcript):
        log.debug(f"[{i}] {turn.role.upper()}: {_format_value(turn.content)}")
    log.debug(f"TOTAL TURNS: {len(transcript)}")
    log.debug("=" * 80)


def trace_system_instruction(system_instruction: str) -> None:
    """Log the system instruction."""
    log.debug("=" * 80)
    log.debug("SYSTEM INSTRUCTION")
    log.debug("=" * 80)
    log.debug(_format_value(system_instruction, max_length=None))
    log.debug("=" * 80)


def trace_model_config(model_name: str) -> None:
    log.debug("=" * 80)
    log.debug("MODEL CONFIGURATION")
    log.debug("=" * 80)
    log.debug(f"Model: {model_name}")
    log.debug("=" * 80)


def trace_completion(completion_text: str) -> None:
    """Log the raw completion, prompt block included."""
    log.debug("=" * 80)
    log.debug("RAW COMPLETION")
    log.debug("=" * 80)
    log.debug(_format_value(completion_text, max_length=None))
    log.debug("=" * 80)


def trace_extraction(result: ExtractionResult, new_prompt: SongPrompt) -> None:
    """Log where this turn's prompt fragment came from and the merged prompt."""
    log.debug("=" * 80)
    log.debug(f"PROMPT EXTRACTION ({result.source.value})")
    log.debug("=" * 80)
    if result.fragment is not None:
        log.debug(f"Fragment:\n{_format_value(result.fragment, max_length=None)}")
    log.debug(f"Merged prompt:\n{_format_value(new_prompt, max_length=None)}")
    log.debug("=" * 80)

"""Pull a song prompt fragment out of a model reply or, failing that, the user's message."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from songchat.agent.keywords import (
    BPM_PATTERN,
    ENERGY_KEYWORDS,
    GENRE_KEYWORDS,
    MOOD_KEYWORDS,
    SIMILAR_TO_KEYWORDS,
    TEMPO_KEYWORDS,
    TITLE_PATTERN,
    clean_title,
    match_all,
    match_first,
)
from songchat.agent.prompts import PROMPT_END_MARKER, PROMPT_START_MARKER
from songchat.models.song_prompt import ExtractionResult, Provenance, SongPrompt
from songchat.services.errors import PayloadParseError

log = logging.getLogger(__name__)


def _strip_markers(text: str) -> str:
    return text.replace(PROMPT_START_MARKER, "").replace(PROMPT_END_MARKER, "")


def extract_delimited_block(completion_text: str) -> tuple[str, str | None]:
    """Split a completion into (display_text, payload).

    The payload is the text between the start and end markers when both are
    present and in order. Otherwise there is no payload and the whole text is
    shown, minus any stray markers.
    """
    start = completion_text.find(PROMPT_START_MARKER)
    end = completion_text.find(PROMPT_END_MARKER)

    if start == -1 or end == -1 or start >= end:
        return _strip_markers(completion_text).strip(), None

    payload = completion_text[start + len(PROMPT_START_MARKER):end]
    display_text = _strip_markers(completion_text[:start]).strip()
    return display_text, payload


def parse_payload(payload: str) -> SongPrompt:
    """Parse a delimited payload into a prompt fragment.

    Raises:
        PayloadParseError: if the payload holds no JSON object or does not fit the schema.
    """
    json_start = payload.find("{")
    json_end = payload.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        raise PayloadParseError("No JSON object found in prompt block")

    try:
        data = json.loads(payload[json_start:json_end])
    except json.JSONDecodeError as e:
        raise PayloadParseError(f"Prompt block is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PayloadParseError("Prompt block is not a JSON object")

    try:
        return SongPrompt.model_validate(data)
    except ValidationError as e:
        raise PayloadParseError(f"Prompt block does not match the prompt schema: {e}") from e


def extract_keywords(user_message: str) -> ExtractionResult | None:
    """Scan the user's message for genre, mood, tempo, energy, reference and title cues.

    Only what this message says is reported; how it combines with the prior
    prompt (genres replace, moods accumulate) is decided by the merge rules.
    Returns None when nothing matched.
    """
    text = user_message.lower()
    fragment: dict[str, Any] = {}
    style: dict[str, Any] = {}

    genres = match_all(text, GENRE_KEYWORDS)
    if genres:
        style["genre"] = genres

    moods = match_all(text, MOOD_KEYWORDS)
    if moods:
        style["mood"] = moods

    bpm = BPM_PATTERN.search(text)
    if bpm:
        style["tempo"] = f"{bpm.group(1)}bpm"
    else:
        tempo = match_first(text, TEMPO_KEYWORDS)
        if tempo:
            style["tempo"] = tempo

    if style:
        fragment["style"] = style

    energy = match_first(text, ENERGY_KEYWORDS)
    if energy:
        fragment["production"] = {"energy": energy}

    similar_to = match_all(text, SIMILAR_TO_KEYWORDS)
    if similar_to:
        fragment["references"] = {"similar_to": similar_to}

    titles = [clean_title(m.group(1)) for m in TITLE_PATTERN.finditer(user_message)]
    titles = [t for t in titles if t]
    if titles:
        fragment["title"] = titles[-1]

    if not fragment:
        return None

    log.info("Keyword fallback matched: %s", sorted(fragment))
    return ExtractionResult(
        fragment=SongPrompt.model_validate(fragment),
        source=Provenance.KEYWORD_FALLBACK,
    )


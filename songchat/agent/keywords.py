"""Keyword tables for the fallback extractor.

Each table maps a canonical value to the lower-case substrings that trigger it.
Table order matters: genres are reported in table order, and tempo/energy take
the first table that matches.
"""

from __future__ import annotations

import re

GENRE_KEYWORDS: dict[str, list[str]] = {
    "pop": ["pop"],
    "rock": ["rock"],
    "hip hop": ["hip hop", "hip-hop", "hiphop", "rap"],
    "r&b": ["r&b", "rnb", "rhythm and blues"],
    "jazz": ["jazz"],
    "blues": ["blues"],
    "country": ["country"],
    "folk": ["folk"],
    "electronic": ["electronic", "electro", "edm"],
    "house": ["house"],
    "techno": ["techno"],
    "trance": ["trance"],
    "drum and bass": ["drum and bass", "drum & bass", "dnb", "d&b"],
    "dubstep": ["dubstep"],
    "metal": ["metal"],
    "punk": ["punk"],
    "reggae": ["reggae"],
    "classical": ["classical", "orchestral"],
}

MOOD_KEYWORDS: dict[str, list[str]] = {
    "happy": ["happy", "joyful", "cheerful", "upbeat"],
    "sad": ["sad", "melancholy", "melancholic", "heartbreak"],
    "energetic": ["energetic", "hype", "pumped"],
    "chill": ["chill", "relaxed", "laid back", "laid-back", "mellow"],
    "dark": ["dark", "moody", "sinister"],
    "romantic": ["romantic", "love"],
    "angry": ["angry", "aggressive", "furious"],
    "nostalgic": ["nostalgic", "nostalgia"],
    "dreamy": ["dreamy", "ethereal"],
    "epic": ["epic", "anthemic", "cinematic"],
}

TEMPO_KEYWORDS: dict[str, list[str]] = {
    "fast": ["fast", "uptempo", "up-tempo", "quick"],
    "slow": ["slow", "downtempo", "ballad"],
    "medium": ["medium tempo", "mid-tempo", "midtempo", "moderate tempo"],
}

ENERGY_KEYWORDS: dict[str, list[str]] = {
    "high": ["high energy", "high-energy", "intense", "banger", "hard-hitting"],
    "medium": ["medium energy", "moderate energy", "balanced"],
    "low": ["low energy", "low-energy", "calm", "gentle", "soft"],
}

SIMILAR_TO_KEYWORDS: dict[str, list[str]] = {
    "Dirtybird": ["dirtybird", "dirty bird"],
}

BPM_PATTERN = re.compile(r"(\d+)\s*bpm")

# "title is X", "call it X", "named X", "name X" up to the next sentence terminator;
# an opening quote stays in the capture so clean_title can pair it
TITLE_PATTERN = re.compile(
    r"\b(?:title is|call it|named|name)\b\s*[:\-]?\s*([\"'“‘]?[^.!?\n\"”]+)",
    re.IGNORECASE,
)


def match_all(text: str, table: dict[str, list[str]]) -> list[str]:
    """Return every canonical value with a trigger in ``text``, in table order."""
    return [value for value, triggers in table.items() if any(t in text for t in triggers)]


def match_first(text: str, table: dict[str, list[str]]) -> str | None:
    """Return the first canonical value with a trigger in ``text``."""
    for value, triggers in table.items():
        if any(t in text for t in triggers):
            return value
    return None


# opening quote -> closing quotes that pair with it
_TITLE_QUOTES = {'"': "", "“": "", "'": "'’", "‘": "’"}


def clean_title(raw: str) -> str:
    """Strip a surrounding quote pair from a captured title, keeping inner apostrophes."""
    title = raw.strip()
    if title and title[0] in _TITLE_QUOTES:
        closers = _TITLE_QUOTES[title[0]]
        title = title[1:]
        if closers and title and title[-1] in closers:
            title = title[:-1]
    return title.strip()

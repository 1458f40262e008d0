"""Merge a prompt fragment onto the prior prompt, field by field."""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any

from songchat.models.song_prompt import Provenance, SongPrompt

GROUPS = ("style", "structure", "references", "production")

_MISSING = object()


class MergeStrategy(str, Enum):
    SCALAR_OVERRIDE = "scalar-override"
    REPLACE_IF_PRESENT = "replace-if-present"
    UNION_IF_PRESENT = "union-if-present"
    RETAIN = "retain"


_SCALARS = (
    "title",
    "lyrics",
    "style.vocals",
    "style.tempo",
    "references.era",
    "production.energy",
    "production.production_style",
)

FIELD_RULES: dict[Provenance, dict[str, MergeStrategy]] = {
    # The model is asked for complete arrays every turn, never deltas.
    Provenance.MODEL_DECLARED: {
        **{path: MergeStrategy.SCALAR_OVERRIDE for path in _SCALARS},
        "style.genre": MergeStrategy.REPLACE_IF_PRESENT,
        "style.mood": MergeStrategy.REPLACE_IF_PRESENT,
        "style.instruments": MergeStrategy.REPLACE_IF_PRESENT,
        "structure.sections": MergeStrategy.REPLACE_IF_PRESENT,
        "references.similar_to": MergeStrategy.REPLACE_IF_PRESENT,
    },
    # Keywords only see the current message: genres describe it, moods accumulate.
    Provenance.KEYWORD_FALLBACK: {
        **{path: MergeStrategy.SCALAR_OVERRIDE for path in _SCALARS},
        "style.genre": MergeStrategy.REPLACE_IF_PRESENT,
        "style.mood": MergeStrategy.UNION_IF_PRESENT,
        "style.instruments": MergeStrategy.RETAIN,
        "structure.sections": MergeStrategy.RETAIN,
        "references.similar_to": MergeStrategy.REPLACE_IF_PRESENT,
    },
}


def _get(data: dict[str, Any], path: str) -> Any:
    node: Any = data
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def _set(data: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    node = data
    for key in parents:
        if not isinstance(node.get(key), dict):
            node[key] = {}
        node = node[key]
    node[leaf] = value


def _delete(data: dict[str, Any], path: str) -> None:
    *parents, leaf = path.split(".")
    node: Any = data
    for key in parents:
        node = node.get(key)
        if not isinstance(node, dict):
            return
    node.pop(leaf, None)


def _union(existing: list[Any], new: list[Any]) -> list[Any]:
    merged: list[Any] = []
    for item in [*existing, *new]:
        if item not in merged:
            merged.append(item)
    return merged


def merge_prompt(
    prior: SongPrompt, fragment: SongPrompt, provenance: Provenance
) -> SongPrompt:
    """Return a new prompt with ``fragment`` applied to ``prior``.

    Fields the fragment does not mention keep their prior value. An explicit
    null clears a field (or a whole group); empty strings and lists are kept.
    ``prior`` is never modified.
    """
    if provenance not in FIELD_RULES:
        return prior

    result = copy.deepcopy(prior.to_dict())
    incoming = fragment.to_dict()

    emptied: set[str] = set()
    for group in GROUPS:
        if group in incoming and incoming[group] is None:
            result.pop(group, None)

    for path, strategy in FIELD_RULES[provenance].items():
        value = _get(incoming, path)
        if value is _MISSING or strategy is MergeStrategy.RETAIN:
            continue

        if value is None:
            _delete(result, path)
            emptied.add(path.split(".")[0])
        elif strategy is MergeStrategy.UNION_IF_PRESENT:
            existing = _get(result, path)
            if existing is _MISSING or existing is None:
                existing = []
            _set(result, path, _union(existing, value))
        else:
            _set(result, path, copy.deepcopy(value))

    # only groups this fragment cleared are dropped; an empty prior group stays
    for group in emptied:
        if group in result and not result[group]:
            del result[group]

    return SongPrompt.model_validate(result)

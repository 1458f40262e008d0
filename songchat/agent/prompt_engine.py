"""Turn a model reply into display text plus the updated song prompt."""

from __future__ import annotations

import logging

from songchat.agent.debug import trace_completion, trace_extraction
from songchat.agent.extraction import extract_delimited_block, extract_keywords, parse_payload
from songchat.agent.merge import merge_prompt
from songchat.models.song_prompt import ExtractionResult, Provenance, SongPrompt
from songchat.services.errors import PayloadParseError

log = logging.getLogger(__name__)


def extract_fragment(
    completion_text: str, last_user_message: str
) -> tuple[str, ExtractionResult]:
    """Find the prompt fragment for this turn.

    The model's delimited block wins. When it is missing or unparseable the
    user's message is scanned for keywords instead.

    Returns:
        (display_text, extraction result). The result's source is
        ``Provenance.UNCHANGED`` when neither path found anything.
    """
    display_text, payload = extract_delimited_block(completion_text)

    if payload is not None:
        try:
            fragment = parse_payload(payload)
            log.info("Using model-declared prompt block")
            return display_text, ExtractionResult(
                fragment=fragment, source=Provenance.MODEL_DECLARED
            )
        except PayloadParseError as e:
            log.warning("Ignoring malformed prompt block: %s", e)

    fallback = extract_keywords(last_user_message)
    if fallback is not None:
        return display_text, fallback

    return display_text, ExtractionResult()


def reconcile(
    completion_text: str,
    last_user_message: str,
    prior_prompt: SongPrompt | None = None,
    debug: bool = False,
) -> tuple[str, SongPrompt]:
    """Strip the prompt block from a reply and fold its contents into ``prior_prompt``.

    Args:
        completion_text: Raw text returned by the completion API.
        last_user_message: The user's message that produced this reply.
        prior_prompt: The prompt held by the caller from the previous turn.
        debug: If True, log the raw completion and the extraction outcome.

    Returns:
        (display_text, new_prompt). ``new_prompt`` is ``prior_prompt`` itself
        when nothing new was extracted.
    """
    prior = prior_prompt if prior_prompt is not None else SongPrompt()
    if debug:
        trace_completion(completion_text)

    display_text, result = extract_fragment(completion_text, last_user_message)

    if result.fragment is None or result.source is Provenance.UNCHANGED:
        log.debug("No prompt information in this turn; keeping prior prompt")
        new_prompt = prior
    else:
        new_prompt = merge_prompt(prior, result.fragment, result.source)

    if debug:
        trace_extraction(result, new_prompt)

    return display_text, new_prompt

"""
src/nlp/language_heuristic.py
==============================
Stop-word Language Heuristic

Responsibility:
    - Decide whether a translation is *still* in the source language by
      counting frequent function words of both languages

This is a guardrail, not a classifier. It only has to catch the model
echoing the source sentence back. The threshold is asymmetric: the
source-word count must be strictly greater than the target-word count AND
at least 2, so a short correct translation with no target stop-words
(e.g. "God is good.") never trips it.

This module does NOT:
    - Call any API
    - Detect arbitrary languages (only codes present in STOP_WORDS)
"""

import logging
import re

logger = logging.getLogger("levita.nlp.language_heuristic")

MIN_SOURCE_HITS: int = 2


# ---------------------------------------------------------------------------
# Stop-word lists (short, frequent function words only)
# ---------------------------------------------------------------------------

STOP_WORDS: dict[str, tuple[str, ...]] = {
    "es": ("de", "la", "que", "el", "en", "y", "a", "los", "se", "del",
           "las", "por", "un", "una", "con", "no", "su", "para", "es", "al"),
    "en": ("the", "to", "and", "of", "a", "in", "that", "is", "for",
           "it", "with", "you", "this", "are", "be", "on", "we"),
    "pt": ("de", "a", "o", "que", "e", "do", "da", "em", "um", "para",
           "com", "não", "uma", "os", "no", "se", "na", "por"),
    "fr": ("de", "la", "le", "et", "les", "des", "en", "un", "du", "une",
           "que", "est", "pour", "qui", "dans", "pas", "au"),
}

# Anything that is not a letter, digit or apostrophe separates words.
_BOUNDARY = re.compile(r"[^\w']+", re.UNICODE)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def count_stop_words(text: str, words: tuple[str, ...] | list[str]) -> int:
    """Count case-insensitive whole-word occurrences of ``words`` in ``text``."""
    padded = f" {_BOUNDARY.sub(' ', text.lower()).strip()} "
    # str.count does not overlap; doubling the separators lets "la la" count twice.
    haystack = padded.replace(" ", "  ")
    return sum(haystack.count(f" {word} ") for word in words)


def is_likely_source_language(
    text: str,
    source: str = "es",
    target: str = "en",
) -> bool:
    """
    Return True if ``text`` still looks like it is in the ``source`` language.

    Trips only when source hits > target hits and source hits >= 2.
    Unknown language codes never trip.
    """
    if not text or not text.strip():
        return False

    source_words = STOP_WORDS.get(source)
    target_words = STOP_WORDS.get(target)
    if not source_words or not target_words:
        logger.debug(
            "No stop-word list for %s -> %s, guardrail disabled.", source, target,
        )
        return False

    source_hits = count_stop_words(text, source_words)
    target_hits = count_stop_words(text, target_words)

    return source_hits > target_hits and source_hits >= MIN_SOURCE_HITS

"""
src/nlp/translator.py
======================
Translator (Translation Client + Translate-with-Guardrail)

Responsibility:
    - Translate one finalized utterance into the target language via OpenAI
    - Defend against the model echoing the source language back:
        1. primary call with the full system prompt
        2. stop-word guardrail on the result
        3. on a trip, ONE retry with a blunt corrective prompt
        4. if the retry still trips, give up and return ""
    - Strip boilerplate prefixes ("Translation:", "Output:", ...)

Contract:
    ``translate()`` NEVER raises. An empty string means "no translation
    available" and the caller skips speech synthesis for that utterance.
    Source-language text is never returned as if it were a translation.

This module does NOT:
    - Perform STT or speech synthesis
    - Broadcast anything to clients
    - Keep history between utterances
"""

import logging
import re
from typing import Any

from src.config import RelaySettings
from src.nlp.language_heuristic import is_likely_source_language
from src.nlp.prompts import TEXT_TAG, TranslationPrompt, load_prompt
from src.openai_retry import chat_completions_with_retry

logger = logging.getLogger("levita.nlp.translator")


class TranslationError(RuntimeError):
    """The model call failed or returned nothing usable."""


_GENERIC_PREFIXES: tuple[str, ...] = ("translation", "translated text", "output", "english")
_TAG_PATTERN = re.compile(rf"</?{TEXT_TAG}>", re.IGNORECASE)
_QUOTE_PAIRS = {"\"": "\"", "'": "'", "“": "”", "«": "»"}


# ---------------------------------------------------------------------------
# Translator
# ---------------------------------------------------------------------------


class Translator:
    """Translation client with a language guardrail."""

    def __init__(
        self,
        client: Any,
        prompt: TranslationPrompt,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.1,
        max_tokens: int = 200,
        frequency_penalty: float = 0.5,
        source_language: str = "es",
        target_language: str = "en",
    ):
        self.client = client
        self.prompt = prompt
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.frequency_penalty = frequency_penalty
        self.source_language = source_language
        self.target_language = target_language

    async def translate(self, text: str) -> str:
        """
        Translate ``text`` with the guardrail policy.

        Returns:
            The translation, or "" if it could not be produced safely.
        """
        if not text or not text.strip():
            return ""

        if self.client is None:
            logger.warning("Translation skipped: no OpenAI client configured.")
            return ""

        # ---- 1. Primary prompt ----
        try:
            first = await self.request_translation(self.prompt.build_system_prompt(), text)
        except TranslationError as exc:
            logger.error("Translation failed: %s", exc)
            return ""

        if not self._still_source_language(first):
            return first

        # ---- 2. Guardrail trip: one corrective retry ----
        logger.warning(
            "Guardrail trip: translation still looks like %s (%r), retrying.",
            self.source_language, first[:80],
        )
        try:
            second = await self.request_translation(self.prompt.build_corrective_prompt(), text)
        except TranslationError as exc:
            logger.error("Corrective translation failed: %s", exc)
            return ""

        if self._still_source_language(second):
            logger.error(
                "Guardrail trip on retry (%r), dropping translation.", second[:80],
            )
            return ""

        logger.info("Corrective retry produced a valid translation.")
        return second

    async def request_translation(self, system_prompt: str, text: str) -> str:
        """
        One model call. Returns cleaned text.

        Raises:
            TranslationError: transport/API error, no choices, or empty output.
        """
        try:
            response = await chat_completions_with_retry(
                self.client,
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": self.prompt.build_user_message(text)},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                frequency_penalty=self.frequency_penalty,
            )
        except Exception as exc:
            raise TranslationError(f"OpenAI request failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise TranslationError("OpenAI returned no choices.")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            raise TranslationError("OpenAI returned no message content.")

        cleaned = clean_translation(content, self.prompt.target_language)
        if not cleaned:
            raise TranslationError("OpenAI returned an empty translation.")
        return cleaned

    def _still_source_language(self, text: str) -> bool:
        return is_likely_source_language(
            text, source=self.source_language, target=self.target_language,
        )


# ---------------------------------------------------------------------------
# Output cleanup
# ---------------------------------------------------------------------------


def clean_translation(raw: str, target_name: str = "English") -> str:
    """Strip delimiter tags, wrapping quotes and boilerplate label prefixes."""
    text = _TAG_PATTERN.sub("", raw).strip()

    prefixes = set(_GENERIC_PREFIXES)
    if target_name:
        prefixes.add(target_name.lower())
    prefix_pattern = re.compile(
        r"^(?:" + "|".join(re.escape(p) for p in sorted(prefixes, key=len, reverse=True)) + r")\s*:\s*",
        re.IGNORECASE,
    )

    # Labels can be stacked ("Output: Translation: ...").
    while True:
        stripped = prefix_pattern.sub("", text, count=1).strip()
        if stripped == text:
            break
        text = stripped

    if _is_single_quoted_span(text):
        text = text[1:-1].strip()

    return text


def _is_single_quoted_span(text: str) -> bool:
    # '"Blessed" are the meek, says the "Lord"' is two spans, not one.
    if len(text) < 2:
        return False
    opening, closing = text[0], text[-1]
    if _QUOTE_PAIRS.get(opening) != closing:
        return False
    inner = text[1:-1]
    return opening not in inner and closing not in inner


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_translator(settings: RelaySettings) -> Translator:
    """Create a Translator from settings (client is None without a key)."""
    client = None
    if settings.openai_api_key:
        from openai import AsyncOpenAI

        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.upstream_timeout_seconds,
            max_retries=0,
        )
    else:
        logger.warning("OPENAI_API_KEY not set: every translation will be empty.")

    prompt = load_prompt(
        settings.translation_prompt_file,
        settings.source_language_name,
        settings.target_language_name,
    )
    return Translator(
        client,
        prompt,
        model=settings.translation_model,
        temperature=settings.translation_temperature,
        max_tokens=settings.translation_max_tokens,
        frequency_penalty=settings.translation_frequency_penalty,
        source_language=settings.source_language,
        target_language=settings.target_language,
    )

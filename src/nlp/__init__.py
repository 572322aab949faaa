# src/nlp/__init__.py
# ====================
# Translation Layer
#
#   - prompts.py            persona / rules / few-shot examples as data
#   - language_heuristic.py stop-word guardrail (is it still the source language?)
#   - translator.py         OpenAI call + one corrective retry on a guardrail trip
#
# Public API:
#   Translator.translate(text) -> str  ("" when no safe translation exists)

from src.nlp.language_heuristic import is_likely_source_language  # noqa: F401
from src.nlp.prompts import TranslationPrompt, load_prompt  # noqa: F401
from src.nlp.translator import Translator, TranslationError, build_translator  # noqa: F401

__all__ = [
    "TranslationError",
    "TranslationPrompt",
    "Translator",
    "build_translator",
    "is_likely_source_language",
    "load_prompt",
]

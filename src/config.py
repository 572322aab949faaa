"""
src/config.py
==============
Runtime Configuration

Responsibility:
    - Read all relay settings from the environment (``.env`` is loaded first)
    - Report which required API keys are missing at boot
    - Map language codes to human-readable names for prompts and logs

Missing keys are NOT fatal here. The server still starts; every relay
connection will then fail at speech-recognition session open and be
closed immediately.

This module does NOT:
    - Create any API clients
    - Validate API keys against the upstream services
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("levita.config")


# ---------------------------------------------------------------------------
# Language names
# ---------------------------------------------------------------------------

LANGUAGE_NAMES: dict[str, str] = {
    "es": "Spanish",
    "en": "English",
    "pt": "Portuguese",
    "fr": "French",
    "de": "German",
    "ko": "Korean",
    "zh": "Chinese",
}


def language_name(code: str) -> str:
    """Return the display name for a language code (unknown codes verbatim)."""
    return LANGUAGE_NAMES.get(code, code)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_REQUIRED_KEYS: tuple[str, ...] = ("DEEPGRAM_API_KEY", "OPENAI_API_KEY")


@dataclass(frozen=True)
class RelaySettings:
    """Immutable snapshot of the relay configuration."""

    deepgram_api_key: str | None = None
    openai_api_key: str | None = None
    youtube_api_key: str | None = None

    host: str = "0.0.0.0"
    port: int = 3001

    source_language: str = "es"
    target_language: str = "en"

    deepgram_model: str = "nova-2"
    endpointing_ms: int = 300

    translation_model: str = "gpt-4o-mini"
    translation_temperature: float = 0.1
    translation_max_tokens: int = 200
    translation_frequency_penalty: float = 0.5
    translation_prompt_file: str | None = None

    tts_model: str = "tts-1"
    tts_voice: str = "onyx"

    broadcast_interim: bool = False
    upstream_timeout_seconds: float = 15.0

    @property
    def source_language_name(self) -> str:
        return language_name(self.source_language)

    @property
    def target_language_name(self) -> str:
        return language_name(self.target_language)

    def missing_keys(self) -> list[str]:
        """Names of the required API keys that are not configured."""
        values = {
            "DEEPGRAM_API_KEY": self.deepgram_api_key,
            "OPENAI_API_KEY": self.openai_api_key,
        }
        return [name for name in _REQUIRED_KEYS if not values[name]]


def load_settings() -> RelaySettings:
    """
    Build a ``RelaySettings`` from the current environment.

    Numeric and boolean variables that fail to parse fall back to their
    default value with a warning rather than aborting startup.
    """
    defaults = RelaySettings()

    return RelaySettings(
        deepgram_api_key=_env_str("DEEPGRAM_API_KEY"),
        openai_api_key=_env_str("OPENAI_API_KEY"),
        youtube_api_key=_env_str("YOUTUBE_API_KEY"),
        host=_env_str("HOST") or defaults.host,
        port=_env_int("PORT", defaults.port),
        source_language=(_env_str("SOURCE_LANGUAGE") or defaults.source_language).lower(),
        target_language=(_env_str("TARGET_LANGUAGE") or defaults.target_language).lower(),
        deepgram_model=_env_str("DEEPGRAM_MODEL") or defaults.deepgram_model,
        endpointing_ms=_env_int("ENDPOINTING_MS", defaults.endpointing_ms),
        translation_model=_env_str("TRANSLATION_MODEL") or defaults.translation_model,
        translation_temperature=_env_float(
            "TRANSLATION_TEMPERATURE", defaults.translation_temperature,
        ),
        translation_max_tokens=_env_int(
            "TRANSLATION_MAX_TOKENS", defaults.translation_max_tokens,
        ),
        translation_frequency_penalty=_env_float(
            "TRANSLATION_FREQUENCY_PENALTY", defaults.translation_frequency_penalty,
        ),
        translation_prompt_file=_env_str("TRANSLATION_PROMPT_FILE"),
        tts_model=_env_str("TTS_MODEL") or defaults.tts_model,
        tts_voice=_env_str("TTS_VOICE") or defaults.tts_voice,
        broadcast_interim=_env_bool("BROADCAST_INTERIM", defaults.broadcast_interim),
        upstream_timeout_seconds=_env_float(
            "UPSTREAM_TIMEOUT_SECONDS", defaults.upstream_timeout_seconds,
        ),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _env_str(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using default %d.", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s=%r, using default %s.", name, raw, default)
        return default


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("Invalid boolean for %s=%r, using default %s.", name, raw, default)
    return default

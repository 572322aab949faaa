"""
src/audio/synthesizer.py
=========================
Speech Synthesis Client

Responsibility:
    - Turn one translated sentence into spoken audio via OpenAI TTS
    - Return the raw WAV (PCM16) bytes exactly as the API sent them

Failures are recovered locally: the caller gets ``None`` and simply skips
the audio frame for that utterance. The text frame has already gone out.

This module does NOT:
    - Translate text
    - Re-encode, resample or otherwise touch the audio bytes
    - Broadcast anything
"""

import logging
from typing import Any

from src.config import RelaySettings
from src.openai_retry import speech_with_retry

logger = logging.getLogger("levita.audio.synthesizer")

AUDIO_FORMAT = "wav"


class SpeechSynthesizer:
    """Request/response text-to-speech client."""

    def __init__(self, client: Any, *, model: str = "tts-1", voice: str = "onyx"):
        self.client = client
        self.model = model
        self.voice = voice

    async def synthesize(self, text: str) -> bytes | None:
        """
        Synthesize ``text`` to WAV bytes.

        Returns:
            Raw audio bytes, or None if synthesis failed or produced nothing.
        """
        if not text or not text.strip():
            return None

        if self.client is None:
            logger.warning("Speech synthesis skipped: no OpenAI client configured.")
            return None

        try:
            response = await speech_with_retry(
                self.client,
                model=self.model,
                voice=self.voice,
                input=text,
                response_format=AUDIO_FORMAT,
            )
        except Exception as exc:
            logger.error("Speech synthesis failed: %s", exc)
            return None

        audio = getattr(response, "content", None)
        if not isinstance(audio, (bytes, bytearray)) or not audio:
            logger.error("Speech synthesis returned no audio for %d chars.", len(text))
            return None

        logger.debug("Synthesized %d bytes of audio for %d chars.", len(audio), len(text))
        return bytes(audio)


def build_synthesizer(settings: RelaySettings) -> SpeechSynthesizer:
    client = None
    if settings.openai_api_key:
        from openai import AsyncOpenAI

        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.upstream_timeout_seconds,
            max_retries=0,
        )
    return SpeechSynthesizer(client, model=settings.tts_model, voice=settings.tts_voice)

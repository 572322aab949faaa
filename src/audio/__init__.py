# src/audio/__init__.py
# ======================
# Audio Output Layer
#
# Responsibility:
#   - Speech synthesis of translated sentences (WAV, PCM16) via OpenAI TTS
#
# Inbound audio is never decoded here: client chunks go to Deepgram verbatim.

from src.audio.synthesizer import SpeechSynthesizer, build_synthesizer  # noqa: F401

__all__ = ["SpeechSynthesizer", "build_synthesizer"]

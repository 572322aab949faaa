# src/stt/__init__.py
# ====================
# Speech-to-Text Layer
#
# One Deepgram live session per relay connection; emits interim and final
# TranscriptEvents to the orchestrator.
#
# Public API:
#   LiveTranscriptionSession(options, on_transcript)

from src.stt.live_session import (  # noqa: F401
    LiveSessionOptions,
    LiveTranscriptionSession,
    TranscriptEvent,
    TranscriptionSessionError,
)

__all__ = [
    "LiveSessionOptions",
    "LiveTranscriptionSession",
    "TranscriptEvent",
    "TranscriptionSessionError",
]

# src/schemas/__init__.py
# ========================
# Relay frame definitions
#
#   - TranscriptionMessage: final transcript + translation (text frame)
#   - InterimMessage:       optional partial transcript (text frame)

from src.schemas.messages import (  # noqa: F401
    INTERIM,
    TRANSCRIPTION,
    InterimMessage,
    TranscriptionMessage,
)

__all__ = [
    "INTERIM",
    "TRANSCRIPTION",
    "InterimMessage",
    "TranscriptionMessage",
]

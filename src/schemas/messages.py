"""
src/schemas/messages.py
========================
Outbound relay frames

Text frames are UTF-8 JSON. The TRANSCRIPTION shape is locked because the
church-app clients parse it directly::

    {"type": "TRANSCRIPTION", "original": "...", "translation": "...", "isFinal": true}

Audio frames are raw bytes and have no schema here.
"""

from dataclasses import dataclass
from typing import Any

TRANSCRIPTION = "TRANSCRIPTION"
INTERIM = "INTERIM"


@dataclass(frozen=True)
class TranscriptionMessage:
    """Final transcript plus its translation ("" when none is available)."""

    original: str
    translation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": TRANSCRIPTION,
            "original": self.original,
            "translation": self.translation,
            "isFinal": True,
        }


@dataclass(frozen=True)
class InterimMessage:
    """Partial transcript for live-typing display. Never followed by audio."""

    original: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": INTERIM, "original": self.original, "isFinal": False}

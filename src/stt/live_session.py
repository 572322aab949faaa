"""
src/stt/live_session.py
========================
Deepgram Live Transcription Session

Responsibility:
    - Hold ONE long-lived streaming connection to Deepgram per relay client
    - Forward raw audio chunks verbatim while the upstream is open
    - Turn Deepgram transcript events into ``TranscriptEvent`` values and
      hand them to a synchronous callback

Fixed configuration per deployment: source language, smart formatting on,
interim results on, endpointing after a silence threshold (300 ms default).

The callback runs inside Deepgram's read loop, so it MUST return quickly;
the orchestrator only schedules work from it.

This module does NOT:
    - Translate or synthesize anything
    - Decide which transcripts matter (interim vs final is the caller's call)
    - Reconnect after the upstream closes (the client is expected to
      reconnect the websocket instead)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from deepgram import DeepgramClient, LiveOptions, LiveTranscriptionEvents

logger = logging.getLogger("levita.stt.live_session")


class TranscriptionSessionError(RuntimeError):
    """The streaming speech-to-text session could not be opened."""


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TranscriptEvent:
    """One transcript result from the streaming engine."""

    text: str
    is_final: bool


@dataclass(frozen=True)
class LiveSessionOptions:
    api_key: str | None
    language: str = "es"
    model: str = "nova-2"
    endpointing_ms: int = 300
    smart_format: bool = True
    interim_results: bool = True

    def to_live_options(self) -> LiveOptions:
        return LiveOptions(
            model=self.model,
            language=self.language,
            smart_format=self.smart_format,
            interim_results=self.interim_results,
            endpointing=self.endpointing_ms,
        )


def _deepgram_connection(api_key: str) -> Any:
    return DeepgramClient(api_key).listen.asyncwebsocket.v("1")


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class LiveTranscriptionSession:
    """Streaming speech-to-text session bound to one relay connection."""

    def __init__(
        self,
        options: LiveSessionOptions,
        on_transcript: Callable[[TranscriptEvent], None],
        connection_factory: Callable[[str], Any] = _deepgram_connection,
    ):
        self.options = options
        self._on_transcript_callback = on_transcript
        self._connection_factory = connection_factory
        self._connection: Any = None
        self._is_open = False
        self._finished = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    async def open(self) -> None:
        """
        Connect to Deepgram and start streaming.

        Raises:
            TranscriptionSessionError: missing key, rejected config/auth,
                or any SDK failure while starting.
        """
        if not self.options.api_key:
            raise TranscriptionSessionError("DEEPGRAM_API_KEY environment variable is not set.")

        try:
            connection = self._connection_factory(self.options.api_key)
            connection.on(LiveTranscriptionEvents.Open, self._on_open)
            connection.on(LiveTranscriptionEvents.Transcript, self._on_transcript)
            connection.on(LiveTranscriptionEvents.Error, self._on_error)
            connection.on(LiveTranscriptionEvents.Close, self._on_close)

            started = await connection.start(self.options.to_live_options())
        except Exception as exc:
            raise TranscriptionSessionError(f"Deepgram connection failed: {exc}") from exc

        if not started:
            raise TranscriptionSessionError("Deepgram refused to start the live session.")

        self._connection = connection
        self._is_open = True
        logger.info(
            "Deepgram live session open (model=%s, language=%s, endpointing=%dms).",
            self.options.model, self.options.language, self.options.endpointing_ms,
        )

    async def send(self, audio: bytes) -> bool:
        """Forward ``audio`` verbatim. Returns False if the session is not open."""
        if not self._is_open or self._connection is None:
            logger.debug("Dropping %d audio bytes: Deepgram session not open.", len(audio))
            return False

        await self._connection.send(audio)
        return True

    async def finish(self) -> None:
        """Finalize the upstream stream. Safe to call more than once."""
        if self._finished:
            return
        self._finished = True
        self._is_open = False

        connection, self._connection = self._connection, None
        if connection is None:
            return

        try:
            await connection.finish()
        except Exception as exc:
            logger.warning("Error while finishing Deepgram session: %s", exc)
        else:
            logger.info("Deepgram live session finished.")

    # ------------------------------------------------------------------
    # Deepgram event handlers
    # ------------------------------------------------------------------

    async def _on_open(self, *args, **kwargs) -> None:
        logger.debug("Deepgram connection OPEN")

    async def _on_transcript(self, *args, **kwargs) -> None:
        result = kwargs.get("result") or (args[1] if len(args) > 1 else None)
        if result is None:
            return

        event = parse_transcript(result)
        if event is None:
            return

        try:
            self._on_transcript_callback(event)
        except Exception:
            logger.exception("Transcript callback raised.")

    async def _on_error(self, *args, **kwargs) -> None:
        error = kwargs.get("error") or (args[1] if len(args) > 1 else "unknown error")
        logger.error("Deepgram error: %s", error)

    async def _on_close(self, *args, **kwargs) -> None:
        if self._is_open:
            logger.info("Deepgram connection CLOSED by upstream.")
        self._is_open = False


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------


def parse_transcript(result: Any) -> TranscriptEvent | None:
    """
    Extract ``channel.alternatives[0].transcript`` and the finality flags
    from a Deepgram live result (SDK object or plain dict).

    Returns None when the result carries no text.
    """
    channel = _get_attr(result, "channel", None)
    if channel is None:
        return None

    alternatives = _get_attr(channel, "alternatives", None) or []
    if not alternatives:
        return None

    text = (_get_attr(alternatives[0], "transcript", "") or "").strip()
    if not text:
        return None

    return TranscriptEvent(
        text=text,
        is_final=bool(_get_attr(result, "is_final", False)),
    )


def _get_attr(obj, name: str, default):
    """Get an attribute from an SDK object or dict key, with a default."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)

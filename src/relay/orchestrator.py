"""
src/relay/orchestrator.py
==========================
Session Orchestrator

Responsibility:
    One instance per accepted websocket. Bridges that connection's inbound
    audio to translated text + speech for ALL connections.

Lifecycle:
    INIT       accept, register, open a Deepgram live session
               (open failure -> close the websocket with 1011, no retry)
    STREAMING  every binary frame is forwarded verbatim to Deepgram;
               text frames are ignored (there is no command protocol)
    FINAL      each final transcript schedules process_utterance():
                   translate -> broadcast text frame
                             -> (translation non-empty) synthesize
                             -> broadcast audio frame
    CLOSE      unregister, finish the Deepgram session (idempotent)

Ordering: within one utterance the text frame is broadcast before its audio
frame. Across utterances there is no ordering guarantee; overlapping
translate/synthesize chains run concurrently.

In-flight utterance work is NOT cancelled on close. Broadcast is global,
so a listener still gets the speaker's last sentence.
"""

import asyncio
import enum
import logging
from typing import Any, Callable

from starlette.websockets import WebSocketDisconnect

from src.audio.synthesizer import SpeechSynthesizer
from src.nlp.translator import Translator
from src.relay.broadcast import BroadcastDispatcher, ConnectionRegistry, is_open
from src.schemas import InterimMessage, TranscriptionMessage
from src.stt.live_session import TranscriptEvent, TranscriptionSessionError

logger = logging.getLogger("levita.relay.orchestrator")

# RFC 6455 "internal error": upstream speech engine unavailable.
CLOSE_CODE_UPSTREAM_FAILURE = 1011

SessionFactory = Callable[[Callable[[TranscriptEvent], None]], Any]


class ConnectionRole(str, enum.Enum):
    """Inferred, not declared: a connection becomes SOURCE once it sends audio."""

    LISTENER = "LISTENER"
    SOURCE = "SOURCE"


class SessionOrchestrator:
    """Per-connection controller for the transcript -> translate -> speak chain."""

    def __init__(
        self,
        websocket: Any,
        *,
        registry: ConnectionRegistry,
        dispatcher: BroadcastDispatcher,
        session_factory: SessionFactory,
        translator: Translator,
        synthesizer: SpeechSynthesizer,
        broadcast_interim: bool = False,
    ):
        self.websocket = websocket
        self.registry = registry
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.translator = translator
        self.synthesizer = synthesizer
        self.broadcast_interim = broadcast_interim

        self.role = ConnectionRole.LISTENER
        self.session: Any = None
        self._closed = False
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Drive the connection from accept to close."""
        await self.websocket.accept()
        self.registry.add(self.websocket)
        logger.info("Client connected (%d connected).", len(self.registry))

        try:
            self.session = self.session_factory(self.handle_transcript)
            await self.session.open()
        except TranscriptionSessionError as exc:
            logger.error("Failed to open speech recognition session: %s", exc)
            await self.close()
            await self._close_websocket(CLOSE_CODE_UPSTREAM_FAILURE)
            return

        try:
            await self._receive_loop()
        except WebSocketDisconnect:
            pass
        finally:
            await self.close()

    async def _receive_loop(self) -> None:
        while True:
            message = await self.websocket.receive()
            if message.get("type") == "websocket.disconnect":
                return

            audio = message.get("bytes")
            if audio:
                await self._forward_audio(audio)
            elif message.get("text") is not None:
                logger.debug("Ignoring text frame from client (audio-only protocol).")

    async def _forward_audio(self, audio: bytes) -> None:
        if self.role is not ConnectionRole.SOURCE:
            self.role = ConnectionRole.SOURCE
            logger.info("Connection started sending audio; treating it as a source.")

        try:
            await self.session.send(audio)
        except Exception as exc:
            logger.warning("Failed to forward %d audio bytes to Deepgram: %s", len(audio), exc)

    async def close(self) -> None:
        """Unregister and finish the recognition session. Idempotent."""
        if self._closed:
            return
        self._closed = True

        self.registry.discard(self.websocket)
        logger.info("Client disconnected (%d connected).", len(self.registry))

        if self.session is not None:
            await self.session.finish()

    async def _close_websocket(self, code: int) -> None:
        if not is_open(self.websocket):
            return
        try:
            await self.websocket.close(code=code)
        except Exception as exc:
            logger.debug("Websocket close raised: %s", exc)

    async def drain(self) -> None:
        """Wait for every in-flight utterance to finish broadcasting."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Transcript pipeline
    # ------------------------------------------------------------------

    def handle_transcript(self, event: TranscriptEvent) -> None:
        """
        Deepgram callback. Must not block: it only schedules work.

        Only final, non-blank transcripts trigger translation.
        """
        text = event.text.strip()
        if not text:
            return

        if not event.is_final:
            if self.broadcast_interim:
                self._schedule(self.dispatcher.broadcast_json(InterimMessage(text).to_dict()))
            return

        logger.info("Final transcript: %s", text)
        self._schedule(self.process_utterance(text))

    async def process_utterance(self, text: str) -> None:
        """Translate, broadcast text, then synthesize and broadcast audio."""
        try:
            translation = await self.translator.translate(text)

            message = TranscriptionMessage(original=text, translation=translation)
            await self.dispatcher.broadcast_json(message.to_dict())

            if not translation:
                logger.info("No translation for utterance; skipping audio.")
                return

            audio = await self.synthesizer.synthesize(translation)
            if not audio:
                return

            await self.dispatcher.broadcast_bytes(audio)
        except Exception:
            logger.exception("Utterance pipeline failed.")

    def _schedule(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

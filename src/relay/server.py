"""
src/relay/server.py
====================
RelayServer: composition root of the live speech relay.

Owns the single ConnectionRegistry + BroadcastDispatcher pair and the
shared upstream clients (translator, synthesizer). Tests build isolated
instances with fakes injected.
"""

import logging
from typing import Any, Callable

from src.audio.synthesizer import SpeechSynthesizer, build_synthesizer
from src.config import RelaySettings
from src.nlp.translator import Translator, build_translator
from src.relay.broadcast import BroadcastDispatcher, ConnectionRegistry, is_open
from src.relay.orchestrator import SessionFactory, SessionOrchestrator
from src.stt.live_session import LiveSessionOptions, LiveTranscriptionSession, TranscriptEvent

logger = logging.getLogger("levita.relay.server")

# 1001 "going away": server shutting down.
CLOSE_CODE_SHUTDOWN = 1001


class RelayServer:
    def __init__(
        self,
        settings: RelaySettings,
        *,
        translator: Translator | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        session_factory: SessionFactory | None = None,
    ):
        self.settings = settings
        self.registry = ConnectionRegistry()
        self.dispatcher = BroadcastDispatcher(self.registry)
        self.translator = translator if translator is not None else build_translator(settings)
        self.synthesizer = synthesizer if synthesizer is not None else build_synthesizer(settings)
        self.session_factory = session_factory or self._deepgram_session
        self._orchestrators: set[SessionOrchestrator] = set()

    @property
    def connection_count(self) -> int:
        return len(self.registry)

    def _deepgram_session(
        self, on_transcript: Callable[[TranscriptEvent], None],
    ) -> LiveTranscriptionSession:
        options = LiveSessionOptions(
            api_key=self.settings.deepgram_api_key,
            language=self.settings.source_language,
            model=self.settings.deepgram_model,
            endpointing_ms=self.settings.endpointing_ms,
        )
        return LiveTranscriptionSession(options, on_transcript)

    async def handle_connection(self, websocket: Any) -> None:
        """Run one relay connection to completion."""
        orchestrator = SessionOrchestrator(
            websocket,
            registry=self.registry,
            dispatcher=self.dispatcher,
            session_factory=self.session_factory,
            translator=self.translator,
            synthesizer=self.synthesizer,
            broadcast_interim=self.settings.broadcast_interim,
        )
        self._orchestrators.add(orchestrator)
        try:
            await orchestrator.run()
        finally:
            self._orchestrators.discard(orchestrator)

    async def shutdown(self) -> None:
        """Close every open client socket and let in-flight work finish."""
        orchestrators = list(self._orchestrators)
        for websocket in self.registry.snapshot():
            if not is_open(websocket):
                continue
            try:
                await websocket.close(code=CLOSE_CODE_SHUTDOWN)
            except Exception as exc:
                logger.debug("Error closing client during shutdown: %s", exc)

        for orchestrator in orchestrators:
            await orchestrator.close()
            await orchestrator.drain()

        logger.info("Relay shut down (%d sessions closed).", len(orchestrators))

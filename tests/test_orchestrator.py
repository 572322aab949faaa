"""
tests/test_orchestrator.py
===========================
Session orchestrator tests

Test categories:
    1. Lifecycle: accept/register, session-open failure, idempotent close
    2. Streaming: audio passthrough, text frames ignored, role inference
    3. Utterance pipeline: text before audio, degraded modes, fan-out
    4. Concurrency: in-flight work survives close

All tests are OFFLINE; Deepgram/OpenAI are replaced by tests/fakes.py.
"""

import asyncio
import os
import sys
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.relay.broadcast import BroadcastDispatcher, ConnectionRegistry
from src.relay.orchestrator import (
    CLOSE_CODE_UPSTREAM_FAILURE,
    ConnectionRole,
    SessionOrchestrator,
)
from tests.fakes import (
    FakeSynthesizer,
    FakeTranslator,
    FakeWebSocket,
    SessionFactory,
    wait_for,
)


class OrchestratorTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.registry = ConnectionRegistry()
        self.dispatcher = BroadcastDispatcher(self.registry)
        self.translator = FakeTranslator()
        self.synthesizer = FakeSynthesizer()
        self.factory = SessionFactory()

    def _orchestrator(self, websocket, **kwargs):
        return SessionOrchestrator(
            websocket,
            registry=self.registry,
            dispatcher=self.dispatcher,
            session_factory=self.factory,
            translator=self.translator,
            synthesizer=self.synthesizer,
            **kwargs,
        )

    async def _start(self, websocket, **kwargs):
        orchestrator = self._orchestrator(websocket, **kwargs)
        task = asyncio.create_task(orchestrator.run())
        await wait_for(lambda: self.factory.sessions and self.factory.sessions[-1].is_open)
        return orchestrator, task, self.factory.sessions[-1]

    async def _stop(self, websocket, orchestrator, task):
        websocket.push_disconnect()
        await task
        await orchestrator.drain()


# ===================================================================
# 1. Lifecycle
# ===================================================================


class TestLifecycle(OrchestratorTestCase):

    async def test_accept_registers_connection(self):
        ws = FakeWebSocket("source")
        orchestrator, task, _ = await self._start(ws)

        self.assertTrue(ws.accepted)
        self.assertIn(ws, self.registry)

        await self._stop(ws, orchestrator, task)
        self.assertNotIn(ws, self.registry)

    async def test_session_open_failure_closes_client(self):
        self.factory = SessionFactory(fail_open=True)
        ws = FakeWebSocket("source")

        await self._orchestrator(ws).run()

        self.assertEqual(ws.close_code, CLOSE_CODE_UPSTREAM_FAILURE)
        self.assertNotIn(ws, self.registry)

    async def test_disconnect_finishes_session(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws)
        await self._stop(ws, orchestrator, task)
        self.assertEqual(session.finish_calls, 1)

    async def test_close_twice_does_not_raise(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws)
        await self._stop(ws, orchestrator, task)

        await orchestrator.close()
        await orchestrator.close()
        self.assertEqual(session.finish_calls, 1)


# ===================================================================
# 2. Streaming
# ===================================================================


class TestStreaming(OrchestratorTestCase):

    async def test_audio_forwarded_verbatim(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws)

        chunks = [b"\x00\x01\x02", bytes(range(200))]
        for chunk in chunks:
            ws.push_bytes(chunk)
        await wait_for(lambda: len(session.sent) == 2)

        self.assertEqual(session.sent, chunks)
        await self._stop(ws, orchestrator, task)

    async def test_text_frames_are_ignored(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws)

        ws.push_text('{"type": "START"}')
        ws.push_bytes(b"\x10\x20")
        await wait_for(lambda: session.sent)

        self.assertEqual(session.sent, [b"\x10\x20"])
        self.assertEqual(ws.frames, [])
        await self._stop(ws, orchestrator, task)

    async def test_role_becomes_source_after_audio(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws)
        self.assertEqual(orchestrator.role, ConnectionRole.LISTENER)

        ws.push_bytes(b"\x00")
        await wait_for(lambda: session.sent)

        self.assertEqual(orchestrator.role, ConnectionRole.SOURCE)
        await self._stop(ws, orchestrator, task)


# ===================================================================
# 3. Utterance pipeline
# ===================================================================


class TestUtterancePipeline(OrchestratorTestCase):

    async def test_final_transcript_fans_out_text_then_audio(self):
        listeners = [FakeWebSocket(f"listener-{i}") for i in range(3)]
        for listener in listeners:
            self.registry.add(listener)

        source = FakeWebSocket("source")
        orchestrator, task, session = await self._start(source)
        source.push_bytes(b"\x01\x02")
        await wait_for(lambda: session.sent)

        session.emit("Dios es bueno todo el tiempo.")
        await orchestrator.drain()

        for ws in listeners + [source]:
            self.assertEqual([kind for kind, _ in ws.frames], ["text", "bytes"], ws)
            self.assertEqual(ws.texts(), [{
                "type": "TRANSCRIPTION",
                "original": "Dios es bueno todo el tiempo.",
                "translation": "God is good all the time.",
                "isFinal": True,
            }])
            self.assertEqual(ws.audio(), [self.synthesizer.audio])

        self.assertEqual(self.translator.calls, ["Dios es bueno todo el tiempo."])
        self.assertEqual(self.synthesizer.calls, ["God is good all the time."])
        await self._stop(source, orchestrator, task)

    async def test_interim_transcripts_do_not_trigger_translation(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws)

        session.emit("Dios es", is_final=False)
        await orchestrator.drain()

        self.assertEqual(self.translator.calls, [])
        self.assertEqual(ws.frames, [])
        await self._stop(ws, orchestrator, task)

    async def test_interim_broadcast_when_enabled(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws, broadcast_interim=True)

        session.emit("Dios es", is_final=False)
        await orchestrator.drain()

        self.assertEqual(ws.texts(), [{"type": "INTERIM", "original": "Dios es", "isFinal": False}])
        self.assertEqual(self.translator.calls, [])
        await self._stop(ws, orchestrator, task)

    async def test_failed_translation_sends_text_without_audio(self):
        self.translator = FakeTranslator(result="")
        listener = FakeWebSocket("listener")
        self.registry.add(listener)

        await self._orchestrator(FakeWebSocket()).process_utterance("Hermanos, oremos.")

        self.assertEqual(listener.texts()[0]["translation"], "")
        self.assertEqual(listener.audio(), [])
        self.assertEqual(self.synthesizer.calls, [])

    async def test_failed_synthesis_sends_text_only(self):
        self.synthesizer = FakeSynthesizer(audio=None)
        listener = FakeWebSocket("listener")
        self.registry.add(listener)

        await self._orchestrator(FakeWebSocket()).process_utterance("Oremos.")

        self.assertEqual(listener.texts()[0]["translation"], "God is good all the time.")
        self.assertEqual(listener.audio(), [])

    async def test_pipeline_errors_are_contained(self):
        class ExplodingTranslator:
            async def translate(self, text):
                raise RuntimeError("unexpected")

        self.translator = ExplodingTranslator()
        listener = FakeWebSocket()
        self.registry.add(listener)

        await self._orchestrator(FakeWebSocket()).process_utterance("Oremos.")
        self.assertEqual(listener.frames, [])

    async def test_blank_final_transcript_ignored(self):
        ws = FakeWebSocket()
        orchestrator, task, session = await self._start(ws)

        session.emit("   ")
        await orchestrator.drain()

        self.assertEqual(self.translator.calls, [])
        await self._stop(ws, orchestrator, task)


# ===================================================================
# 4. Concurrency
# ===================================================================


class TestInFlightWork(OrchestratorTestCase):

    async def test_in_flight_utterance_survives_source_close(self):
        gate = asyncio.Event()
        self.translator = FakeTranslator(gate=gate)
        listener = FakeWebSocket("listener")
        self.registry.add(listener)

        source = FakeWebSocket("source")
        orchestrator, task, session = await self._start(source)
        session.emit("Amén.")
        await wait_for(lambda: self.translator.calls)

        source.push_disconnect()
        await task
        self.assertNotIn(source, self.registry)

        gate.set()
        await orchestrator.drain()

        self.assertEqual(len(listener.texts()), 1)
        self.assertEqual(len(listener.audio()), 1)
        self.assertEqual(source.frames, [])

    async def test_overlapping_utterances_each_broadcast(self):
        listener = FakeWebSocket()
        self.registry.add(listener)

        source = FakeWebSocket("source")
        orchestrator, task, session = await self._start(source)
        session.emit("Primera frase.")
        session.emit("Segunda frase.")
        await orchestrator.drain()

        originals = sorted(m["original"] for m in listener.texts())
        self.assertEqual(originals, ["Primera frase.", "Segunda frase."])
        self.assertEqual(len(listener.audio()), 2)
        await self._stop(source, orchestrator, task)


if __name__ == "__main__":
    unittest.main()

"""
tests/test_live_session.py
===========================
Deepgram live session tests

A fake connection stands in for ``listen.asyncwebsocket.v("1")``; events
are delivered the way the SDK does it: handler(connection, result=...).
"""

import os
import sys
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from deepgram import LiveTranscriptionEvents

from src.stt.live_session import (
    LiveSessionOptions,
    LiveTranscriptionSession,
    TranscriptEvent,
    TranscriptionSessionError,
    parse_transcript,
)


class FakeDeepgramConnection:

    def __init__(self, start_result=True, start_error=None, finish_error=None):
        self.start_result = start_result
        self.start_error = start_error
        self.finish_error = finish_error
        self.handlers = {}
        self.options = None
        self.sent = []
        self.finish_calls = 0

    def on(self, event, handler):
        self.handlers[event] = handler

    async def start(self, options):
        self.options = options
        if self.start_error:
            raise self.start_error
        return self.start_result

    async def send(self, data):
        self.sent.append(data)
        return True

    async def finish(self):
        self.finish_calls += 1
        if self.finish_error:
            raise self.finish_error
        return True

    async def emit(self, event, **kwargs):
        await self.handlers[event](self, **kwargs)


def _result(text, is_final=True):
    return {"channel": {"alternatives": [{"transcript": text}]}, "is_final": is_final}


class TestLiveSessionOpen(unittest.IsolatedAsyncioTestCase):

    def _session(self, connection, api_key="dg-key"):
        self.events = []
        self.factory_keys = []

        def factory(key):
            self.factory_keys.append(key)
            return connection

        return LiveTranscriptionSession(
            LiveSessionOptions(api_key=api_key, language="es", model="nova-2", endpointing_ms=300),
            self.events.append,
            connection_factory=factory,
        )

    async def test_open_configures_stream(self):
        connection = FakeDeepgramConnection()
        session = self._session(connection)
        await session.open()

        self.assertTrue(session.is_open)
        self.assertEqual(self.factory_keys, ["dg-key"])
        self.assertEqual(connection.options.language, "es")
        self.assertEqual(connection.options.model, "nova-2")
        self.assertTrue(connection.options.smart_format)
        self.assertTrue(connection.options.interim_results)
        self.assertEqual(connection.options.endpointing, 300)
        for event in (
            LiveTranscriptionEvents.Open,
            LiveTranscriptionEvents.Transcript,
            LiveTranscriptionEvents.Error,
            LiveTranscriptionEvents.Close,
        ):
            self.assertIn(event, connection.handlers)

    async def test_missing_key_raises(self):
        session = self._session(FakeDeepgramConnection(), api_key=None)
        with self.assertRaises(TranscriptionSessionError):
            await session.open()
        self.assertEqual(self.factory_keys, [])

    async def test_start_refused_raises(self):
        session = self._session(FakeDeepgramConnection(start_result=False))
        with self.assertRaises(TranscriptionSessionError):
            await session.open()
        self.assertFalse(session.is_open)

    async def test_sdk_error_raises(self):
        session = self._session(FakeDeepgramConnection(start_error=ConnectionError("401 Unauthorized")))
        with self.assertRaises(TranscriptionSessionError):
            await session.open()


class TestLiveSessionStreaming(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.events = []
        self.connection = FakeDeepgramConnection()
        self.session = LiveTranscriptionSession(
            LiveSessionOptions(api_key="dg-key"),
            self.events.append,
            connection_factory=lambda key: self.connection,
        )
        await self.session.open()

    async def test_audio_forwarded_verbatim(self):
        chunk = bytes(range(256))
        self.assertTrue(await self.session.send(chunk))
        self.assertEqual(self.connection.sent, [chunk])

    async def test_transcripts_reach_callback(self):
        await self.connection.emit(LiveTranscriptionEvents.Transcript, result=_result("Dios es", False))
        await self.connection.emit(LiveTranscriptionEvents.Transcript, result=_result("Dios es bueno."))

        self.assertEqual(self.events, [
            TranscriptEvent(text="Dios es", is_final=False),
            TranscriptEvent(text="Dios es bueno.", is_final=True),
        ])

    async def test_empty_transcript_ignored(self):
        await self.connection.emit(LiveTranscriptionEvents.Transcript, result=_result("   "))
        self.assertEqual(self.events, [])

    async def test_upstream_close_stops_forwarding(self):
        await self.connection.emit(LiveTranscriptionEvents.Close, close=None)
        self.assertFalse(self.session.is_open)
        self.assertFalse(await self.session.send(b"\x00\x01"))
        self.assertEqual(self.connection.sent, [])

    async def test_error_event_does_not_raise(self):
        await self.connection.emit(LiveTranscriptionEvents.Error, error="bad audio")
        self.assertTrue(self.session.is_open)

    async def test_finish_is_idempotent(self):
        await self.session.finish()
        await self.session.finish()
        self.assertEqual(self.connection.finish_calls, 1)
        self.assertFalse(self.session.is_open)

    async def test_finish_swallows_sdk_error(self):
        self.connection.finish_error = RuntimeError("socket already closed")
        await self.session.finish()
        self.assertFalse(self.session.is_open)


class TestFinishWithoutOpen(unittest.IsolatedAsyncioTestCase):

    async def test_finish_before_open(self):
        session = LiveTranscriptionSession(LiveSessionOptions(api_key=None), lambda e: None)
        await session.finish()
        await session.finish()


class TestParseTranscript(unittest.TestCase):

    def test_object_payload(self):
        from types import SimpleNamespace as NS

        result = NS(
            channel=NS(alternatives=[NS(transcript=" Amén. ")]),
            is_final=True,
        )
        self.assertEqual(
            parse_transcript(result),
            TranscriptEvent(text="Amén.", is_final=True),
        )

    def test_missing_alternatives(self):
        self.assertIsNone(parse_transcript({"channel": {"alternatives": []}}))
        self.assertIsNone(parse_transcript({}))


if __name__ == "__main__":
    unittest.main()

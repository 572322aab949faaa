# src/relay/__init__.py
# ======================
# Live Speech Relay
#
#   audio (one source websocket)
#     -> Deepgram live session      (src/stt/live_session.py)
#     -> Translator + guardrail     (src/nlp/translator.py)
#     -> SpeechSynthesizer          (src/audio/synthesizer.py)
#     -> BroadcastDispatcher        (every connected websocket)
#
# Public API:
#   RelayServer(settings).handle_connection(websocket)

from src.relay.broadcast import BroadcastDispatcher, ConnectionRegistry  # noqa: F401
from src.relay.orchestrator import ConnectionRole, SessionOrchestrator  # noqa: F401
from src.relay.server import RelayServer  # noqa: F401

__all__ = [
    "BroadcastDispatcher",
    "ConnectionRegistry",
    "ConnectionRole",
    "RelayServer",
    "SessionOrchestrator",
]

"""
src/relay/broadcast.py
=======================
Connection Registry & Broadcast Dispatcher

Responsibility:
    - Track every currently connected relay websocket (process-wide, but
      owned by one RelayServer instance rather than a module global)
    - Send one payload to every open connection:
        * text frames as UTF-8 JSON (``send_text``)
        * audio frames as binary (``send_bytes``), never stringified

A failing or half-closed socket never aborts the broadcast for the others.
Sockets whose send raised are dropped from the registry.

The registry is only mutated from the event loop thread, so there is no lock.
"""

import asyncio
import json
import logging
from typing import Any

from starlette.websockets import WebSocketState

logger = logging.getLogger("levita.relay.broadcast")


class ConnectionRegistry:
    """The set of live relay connections."""

    def __init__(self):
        self._connections: set[Any] = set()

    def add(self, websocket: Any) -> None:
        self._connections.add(websocket)

    def discard(self, websocket: Any) -> None:
        self._connections.discard(websocket)

    def snapshot(self) -> list[Any]:
        return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, websocket: Any) -> bool:
        return websocket in self._connections


def is_open(websocket: Any) -> bool:
    """True if both sides of the websocket are still CONNECTED."""
    return (
        getattr(websocket, "client_state", None) == WebSocketState.CONNECTED
        and getattr(websocket, "application_state", None) == WebSocketState.CONNECTED
    )


class BroadcastDispatcher:
    """Fan-out of text and binary frames to every registered connection."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def broadcast_json(self, message: dict[str, Any]) -> int:
        """Send ``message`` as a JSON text frame. Returns the delivered count."""
        payload = json.dumps(message, ensure_ascii=False)
        return await self._broadcast("send_text", payload)

    async def broadcast_bytes(self, payload: bytes) -> int:
        """Send ``payload`` as a binary frame. Returns the delivered count."""
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError(f"Binary broadcast requires bytes, got {type(payload).__name__}")
        return await self._broadcast("send_bytes", bytes(payload))

    async def _broadcast(self, method: str, payload: str | bytes) -> int:
        targets = [ws for ws in self.registry.snapshot() if is_open(ws)]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(getattr(ws, method)(payload) for ws in targets),
            return_exceptions=True,
        )

        delivered = 0
        for websocket, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("Broadcast %s failed for one client: %s", method, result)
                self.registry.discard(websocket)
            else:
                delivered += 1

        logger.debug("Broadcast %s delivered to %d/%d clients.", method, delivered, len(targets))
        return delivered

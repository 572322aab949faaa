"""
src/api/server.py
==================
Transport Server

Exposes:
    - GET  /                    liveness check (static text)
    - WS   /                    live speech relay (binary audio in,
                                TRANSCRIPTION JSON + WAV frames out)
    - GET  /api/youtube/status  ?channelId=... "is this channel live"

The websocket endpoint carries no command protocol. Whatever binary frames
a client sends are treated as that connection's microphone audio.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from src.api.youtube import YouTubeLookupError, fetch_live_status
from src.config import RelaySettings, load_settings
from src.relay.server import RelayServer

logger = logging.getLogger("levita.api")

HEALTH_MESSAGE = "Levita Audio Server is Running (Deepgram + OpenAI)"


def create_app(
    settings: RelaySettings | None = None,
    relay: RelayServer | None = None,
) -> FastAPI:
    """Build the ASGI app around one RelayServer."""
    settings = settings or load_settings()
    relay = relay or RelayServer(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        missing = settings.missing_keys()
        if missing:
            logger.critical(
                "CRITICAL: Missing API keys (%s). Relay connections will fail. Check .env",
                ", ".join(missing),
            )
        logger.info(
            "Relay ready: %s -> %s on port %d.",
            settings.source_language, settings.target_language, settings.port,
        )
        yield
        await relay.shutdown()

    app = FastAPI(
        title="Levita Live Relay",
        description="Live sermon transcription, translation and speech relay.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------

    @app.get("/", response_class=PlainTextResponse)
    async def health():
        return HEALTH_MESSAGE

    @app.websocket("/")
    async def relay_socket(websocket: WebSocket):
        await relay.handle_connection(websocket)

    @app.get("/api/youtube/status")
    async def youtube_status(channel_id: str | None = Query(None, alias="channelId")):
        if not channel_id or not channel_id.strip():
            raise HTTPException(status_code=400, detail="channelId query parameter is required.")

        try:
            status = await fetch_live_status(channel_id.strip(), settings.youtube_api_key)
        except YouTubeLookupError as exc:
            logger.error("YouTube status lookup failed: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc))

        return JSONResponse(status_code=200, content=status)

    return app

# src/api/__init__.py
# =====================
# Transport Layer
#
#   - server.py   FastAPI app: health check, relay websocket, YouTube status
#   - youtube.py  stateless "is this channel live" lookup (aiohttp)

from src.api.server import create_app  # noqa: F401

__all__ = ["create_app"]

"""
src/api/youtube.py
===================
YouTube "is this channel live" lookup

Unrelated to the audio relay; it only shares the process. Stateless.

Queries the YouTube Data API v3 ``search`` endpoint for a live video on the
channel and normalizes the answer to::

    {"status": "live", "videoId": "..."}   or   {"status": "offline"}
"""

import logging
from typing import Any

import aiohttp

logger = logging.getLogger("levita.api.youtube")

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
REQUEST_TIMEOUT_SECONDS = 10


class YouTubeLookupError(RuntimeError):
    """Missing API key, non-200 answer, or transport failure."""


async def fetch_live_status(
    channel_id: str,
    api_key: str | None,
    session: aiohttp.ClientSession | None = None,
) -> dict[str, Any]:
    """
    Return the normalized live status of ``channel_id``.

    Raises:
        YouTubeLookupError: on missing key or any upstream failure.
    """
    if not api_key:
        raise YouTubeLookupError("YOUTUBE_API_KEY environment variable is not set.")

    params = {
        "part": "id",
        "channelId": channel_id,
        "eventType": "live",
        "type": "video",
        "maxResults": "1",
        "key": api_key,
    }

    if session is None:
        async with aiohttp.ClientSession() as own_session:
            data = await _search(own_session, params)
    else:
        data = await _search(session, params)

    items = data.get("items") or []
    for item in items:
        video_id = (item.get("id") or {}).get("videoId") if isinstance(item, dict) else None
        if video_id:
            logger.info("Channel %s is live (video %s).", channel_id, video_id)
            return {"status": "live", "videoId": video_id}

    return {"status": "offline"}


async def _search(session: Any, params: dict[str, str]) -> dict[str, Any]:
    try:
        async with session.get(
            YOUTUBE_SEARCH_URL,
            params=params,
            timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
        ) as resp:
            if resp.status != 200:
                body = await resp.text()
                raise YouTubeLookupError(
                    f"YouTube API returned status {resp.status}: {body[:200]}"
                )
            data = await resp.json()
    except YouTubeLookupError:
        raise
    except Exception as exc:
        raise YouTubeLookupError(f"YouTube API request failed: {exc}") from exc

    if not isinstance(data, dict):
        raise YouTubeLookupError("YouTube API returned a non-object response.")
    return data

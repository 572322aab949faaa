"""
src/openai_retry.py
====================
Shared OpenAI API retry utility

Provides thin async wrappers around the OpenAI SDK calls used by the relay
(``chat.completions.create`` and ``audio.speech.create``) that retry on
transient failures (429 rate-limit, 5xx server errors, connection timeouts)
with capped exponential back-off.

Usage::

    from src.openai_retry import chat_completions_with_retry

    response = await chat_completions_with_retry(
        client,
        model="gpt-4o-mini",
        messages=[...],
        temperature=0.1,
        max_tokens=200,
    )

The delays are short on purpose: a live caption that arrives ten seconds
late is worthless, so the budget is two retries and a 4 s cap.

This module does NOT:
    - Create or manage OpenAI client instances
    - Retry a response that arrived but is wrong (guardrail trips are
      handled by src.nlp.translator)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger("levita.openai_retry")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAX_RETRIES: int = 2          # total attempts = MAX_RETRIES + 1 (initial)
BASE_DELAY: float = 0.5       # seconds, first back-off delay
MAX_DELAY: float = 4.0
BACKOFF_FACTOR: float = 2.0

# HTTP status codes worth retrying on
_RETRYABLE_STATUS_CODES: set[int] = {429, 500, 502, 503, 504}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_retryable(exc: Exception) -> bool:
    """Return True if the exception is a transient OpenAI error."""
    exc_type = type(exc).__name__
    if exc_type in ("RateLimitError", "APITimeoutError", "APIConnectionError"):
        return True

    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return status_code in _RETRYABLE_STATUS_CODES

    return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def call_with_retry(
    create: Callable[..., Awaitable[Any]],
    **kwargs: Any,
) -> Any:
    """
    Await ``create(**kwargs)`` with automatic retry.

    Retries up to ``MAX_RETRIES`` times on rate-limit (429), server errors
    (5xx) and connection problems. Non-retryable errors are re-raised
    immediately.

    Args:
        create:   An async SDK method, e.g. ``client.chat.completions.create``.
        **kwargs: Passed directly to ``create``.

    Returns:
        Whatever the SDK call returns.

    Raises:
        The last exception if all retries are exhausted.
    """
    last_exc: Exception | None = None
    delay = BASE_DELAY

    for attempt in range(MAX_RETRIES + 1):
        try:
            return await create(**kwargs)
        except Exception as exc:
            last_exc = exc

            if not _is_retryable(exc):
                logger.warning(
                    "OpenAI call failed with non-retryable error: %s", exc,
                )
                raise

            if attempt < MAX_RETRIES:
                logger.warning(
                    "OpenAI call failed (attempt %d/%d): %s, retrying in %.1fs",
                    attempt + 1,
                    MAX_RETRIES + 1,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                delay = min(delay * BACKOFF_FACTOR, MAX_DELAY)
            else:
                logger.error(
                    "OpenAI call failed after %d attempts: %s",
                    MAX_RETRIES + 1,
                    exc,
                )

    raise last_exc  # type: ignore[misc]


async def chat_completions_with_retry(client: Any, **kwargs: Any) -> Any:
    """``client.chat.completions.create(**kwargs)`` with retry."""
    return await call_with_retry(client.chat.completions.create, **kwargs)


async def speech_with_retry(client: Any, **kwargs: Any) -> Any:
    """``client.audio.speech.create(**kwargs)`` with retry."""
    return await call_with_retry(client.audio.speech.create, **kwargs)

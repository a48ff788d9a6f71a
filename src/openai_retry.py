"""
src/openai_retry.py
====================
Shared OpenAI API retry utility — Voicemail Pipeline

Provides a thin wrapper around ``client.chat.completions.create`` that
retries transient failures (5xx server errors, connection errors and
API timeouts) with exponential back-off.

Rate limiting (HTTP 429) is NOT retried here: it is raised as
``RateLimitedError`` so the translation failover chain moves on to the
next provider instead of waiting.

Usage::

    from src.openai_retry import chat_completions_with_retry

    response = chat_completions_with_retry(
        client,
        model="gpt-4o-mini",
        messages=[...],
        temperature=0.0,
    )

This module does NOT:
    - Create or manage OpenAI client instances
    - Decide which provider runs next (handled by the orchestrator)
"""

import logging
import time
from typing import Any

import openai

from src.exceptions import RateLimitedError

logger = logging.getLogger("voicemail.openai_retry")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAX_RETRIES: int = 2          # total attempts = MAX_RETRIES + 1 (initial)
BASE_DELAY: float = 0.5       # seconds, first back-off delay
MAX_DELAY: float = 4.0        # stays well under the per-call provider timeout
BACKOFF_FACTOR: float = 2.0   # exponential multiplier

# HTTP status codes worth retrying on
_RETRYABLE_STATUS_CODES: set[int] = {500, 502, 503, 504}

PROVIDER_NAME = "OpenAI"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_retryable(exc: Exception) -> bool:
    """Return True if the exception is a transient OpenAI error."""
    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        return True
    if isinstance(exc, openai.APIStatusError):
        return exc.status_code in _RETRYABLE_STATUS_CODES
    return False


def _retry_after(exc: Exception) -> float | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    try:
        return float(headers.get("retry-after"))
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def chat_completions_with_retry(
    client: Any,
    **kwargs: Any,
) -> Any:
    """
    Call ``client.chat.completions.create(**kwargs)`` with automatic retry.

    Args:
        client:  An instantiated ``openai.OpenAI`` client.
        **kwargs: Passed directly to ``client.chat.completions.create()``.

    Returns:
        The OpenAI ChatCompletion response object.

    Raises:
        RateLimitedError: On HTTP 429, immediately.
        openai.OpenAIError: The last error once retries are exhausted, or
            any non-retryable error.
    """
    delay = BASE_DELAY

    for attempt in range(MAX_RETRIES + 1):
        try:
            return client.chat.completions.create(**kwargs)
        except openai.RateLimitError as exc:
            logger.warning("OpenAI call rate limited — handing over to failover.")
            raise RateLimitedError(PROVIDER_NAME, _retry_after(exc)) from exc
        except openai.OpenAIError as exc:
            if not _is_retryable(exc):
                logger.warning(
                    "OpenAI call failed with non-retryable error: %s", exc,
                )
                raise

            if attempt >= MAX_RETRIES:
                logger.error(
                    "OpenAI call failed after %d attempts: %s",
                    MAX_RETRIES + 1,
                    exc,
                )
                raise

            logger.warning(
                "OpenAI call failed (attempt %d/%d): %s — retrying in %.1fs",
                attempt + 1,
                MAX_RETRIES + 1,
                exc,
                delay,
            )
            time.sleep(delay)
            delay = min(delay * BACKOFF_FACTOR, MAX_DELAY)

    raise AssertionError("unreachable")  # pragma: no cover

"""
src/concurrency.py
===================
Timeouts & Cancellation — Voicemail Pipeline

Every external provider call (speech, translation, language ID) goes
through ``call_with_timeout`` so that:
    - a slow provider never blocks a pipeline beyond its per-call bound
    - a caller-initiated cancellation stops the wait promptly

Provider SDKs are blocking, so calls run on a worker thread and the
caller waits in short slices, checking the cancellation token between
slices. A timed-out or cancelled call is abandoned; its thread finishes
in the background and its result is discarded.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, TypeVar

from src.exceptions import CancelledError, ProviderTimeoutError

logger = logging.getLogger("voicemail.concurrency")

T = TypeVar("T")

# How often a waiting caller re-checks its cancellation token
WAIT_SLICE_SECONDS: float = 0.05


class CancellationToken:
    """Caller-owned flag shared by every stage of one invocation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError()

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``; raise CancelledError if cancelled meanwhile."""
        if self._event.wait(timeout=max(seconds, 0.0)):
            raise CancelledError()


def call_with_timeout(
    fn: Callable[[], T],
    *,
    timeout: float,
    provider: str,
    cancel_token: CancellationToken | None = None,
) -> T:
    """
    Run ``fn()`` under a per-call time bound.

    Args:
        fn:           Zero-argument callable performing the provider call.
        timeout:      Seconds to wait before giving up.
        provider:     Provider name used in the timeout error.
        cancel_token: Optional token; when set the wait stops immediately.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        ProviderTimeoutError: If ``fn`` has not finished within ``timeout``.
        CancelledError:       If the token is cancelled while waiting.
        Exception:            Anything ``fn`` raised, unchanged.
    """
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"call-{provider}")
    future = executor.submit(fn)
    deadline = time.monotonic() + timeout

    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                logger.warning("%s call exceeded %.1fs timeout.", provider, timeout)
                raise ProviderTimeoutError(provider, timeout)

            done, _ = wait(
                [future],
                timeout=min(WAIT_SLICE_SECONDS, remaining),
                return_when=FIRST_COMPLETED,
            )
            if done:
                return future.result()

            if cancel_token is not None and cancel_token.is_cancelled:
                future.cancel()
                logger.info("%s call abandoned — invocation cancelled.", provider)
                raise CancelledError()
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

"""
src/stt/transcriber.py
=======================
Transcriber — Voicemail Pipeline

Responsibility:
    - Resolve an audio reference through the audio store
    - Short-form recognition first; when it returns nothing (audio over
      the provider's short-form limits, or a failed call) fall back to
      long-running recognition, polled until completion
    - Keep only segments whose best alternative is above the confidence
      threshold and join them with spaces

Low-confidence segments are dropped, not marked. A transcript with no
surviving segment is a TranscriptionError; it is reported, never retried
here (the caller may re-run the whole pipeline).
"""

import logging
import time
from typing import Sequence

from src.audio.store import AudioClip, AudioStore
from src.concurrency import CancellationToken, call_with_timeout
from src.exceptions import (
    AudioUnavailableError,
    CancelledError,
    ProviderError,
    ProviderTimeoutError,
    TranscriptionError,
    VoicemailProcessingError,
)
from src.schemas.voicemail import TranscriptResult
from src.stt.providers import RecognitionAlternative, RecognitionResult, SpeechProvider

logger = logging.getLogger("voicemail.stt.transcriber")

DEFAULT_CONFIDENCE_THRESHOLD = 0.7


class Transcriber:
    """Audio reference -> filtered transcript, with a long-form fallback."""

    def __init__(
        self,
        speech_provider: SpeechProvider,
        audio_store: AudioStore,
        *,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        timeout: float = 30.0,
        poll_interval: float = 2.0,
        max_wait: float = 300.0,
    ):
        self._provider = speech_provider
        self._store = audio_store
        self._threshold = confidence_threshold
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._max_wait = max_wait

    def transcribe(
        self,
        audio_ref: str,
        language_code: str,
        alternate_languages: Sequence[str] = (),
        *,
        audio: AudioClip | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TranscriptResult:
        """
        Transcribe one voicemail.

        Args:
            audio_ref:           Reference resolved through the audio store.
            language_code:       Hinted or detected locale ("en-US").
            alternate_languages: Extra locales the provider may consider.
            audio:               Already-fetched audio; skips the store.
            cancel_token:        Optional cancellation token.

        Raises:
            TranscriptionError: Audio unavailable, or no segment survived
                                filtering on either recognition path.
            CancelledError:     The token was cancelled.
        """
        if audio is None:
            try:
                audio = self._store.fetch(audio_ref)
            except AudioUnavailableError as exc:
                raise TranscriptionError(audio_ref, exc.message, cause=exc) from exc

        alternates = tuple(alternate_languages)

        try:
            results = call_with_timeout(
                lambda: self._provider.recognize(audio, language_code, alternates),
                timeout=self._timeout,
                provider=self._provider.name,
                cancel_token=cancel_token,
            )
        except ProviderError as exc:
            logger.warning(
                "Short-form recognition failed for %s: %s — trying long-running.",
                audio_ref, exc,
            )
            results = []

        used_long_running = False
        if not results:
            results = self._long_running(audio_ref, audio, language_code, alternates, cancel_token)
            used_long_running = True

        kept = self._filter(results)
        if not kept:
            raise TranscriptionError(
                audio_ref,
                f"no segment above confidence {self._threshold:.2f} "
                f"({len(results)} segment(s) recognized)",
            )

        text = " ".join(alt.transcript.strip() for alt in kept)
        language = next((alt.language_code for alt in kept if alt.language_code), None)
        logger.info(
            "Transcribed %s: %d/%d segment(s) kept, %d chars%s.",
            audio_ref, len(kept), len(results), len(text),
            " (long-running)" if used_long_running else "",
        )
        return TranscriptResult(
            text=text,
            segment_confidences=tuple(alt.confidence for alt in kept),
            language_code=language or language_code,
            used_long_running=used_long_running,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _long_running(
        self,
        audio_ref: str,
        audio: AudioClip,
        language_code: str,
        alternates: tuple[str, ...],
        cancel_token: CancellationToken | None,
    ) -> list[RecognitionResult]:
        try:
            operation = call_with_timeout(
                lambda: self._provider.start_long_running(audio, language_code, alternates),
                timeout=self._timeout,
                provider=self._provider.name,
                cancel_token=cancel_token,
            )
        except ProviderError as exc:
            raise TranscriptionError(audio_ref, str(exc), cause=exc) from exc

        deadline = time.monotonic() + self._max_wait
        while not operation.done():
            if time.monotonic() >= deadline:
                operation.cancel()
                timeout_exc = ProviderTimeoutError(self._provider.name, self._max_wait)
                raise TranscriptionError(audio_ref, str(timeout_exc), cause=timeout_exc)
            if cancel_token is not None:
                try:
                    cancel_token.sleep(self._poll_interval)
                except CancelledError:
                    operation.cancel()
                    raise
            else:
                time.sleep(self._poll_interval)

        try:
            return operation.result()
        except VoicemailProcessingError as exc:
            raise TranscriptionError(audio_ref, str(exc), cause=exc) from exc

    def _filter(self, results: list[RecognitionResult]) -> list[RecognitionAlternative]:
        """Best alternative per segment, kept only above the threshold."""
        kept: list[RecognitionAlternative] = []
        for result in results:
            if not result.alternatives:
                continue
            best = max(result.alternatives, key=lambda alt: alt.confidence)
            if best.confidence > self._threshold and best.transcript.strip():
                kept.append(best)
            else:
                logger.debug(
                    "Dropped segment (confidence %.2f): %r", best.confidence, best.transcript,
                )
        return kept

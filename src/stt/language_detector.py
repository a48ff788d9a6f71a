"""
src/stt/language_detector.py
=============================
Language Identification — Voicemail Pipeline

Responsibility:
    - Guess the spoken language of voicemail audio by running recognition
      with a primary language plus a set of candidate alternates and
      ranking the languages the provider reports by confidence
    - Guess the language of a piece of text through a translation
      backend's detection capability

Candidate alternates are configured per primary language
(LanguageRules.detection_alternates_by_primary), not as one global list.

This module does NOT:
    - Produce the final transcript (handled by the transcriber)
    - Decide what to do when detection fails (the pipeline falls back to
      the user's preferred language)
"""

import logging
from typing import Protocol, Sequence

from src.audio.store import AudioClip
from src.concurrency import CancellationToken, call_with_timeout
from src.config import LanguageRules
from src.exceptions import InsufficientInputError, ProviderError
from src.schemas.languages import base_language, language_name
from src.stt.providers import RecognitionResult, SpeechProvider

logger = logging.getLogger("voicemail.stt.language_detector")

LanguageCandidates = list[tuple[str, float]]


class TextLanguageDetector(Protocol):
    """Anything that can name the language of a text (translation backends)."""

    name: str

    def detect(self, text: str) -> tuple[str, float] | None: ...


class LanguageIdentifier:
    """Ranks candidate languages for an audio clip or a text."""

    def __init__(
        self,
        speech_provider: SpeechProvider,
        rules: LanguageRules | None = None,
        timeout: float = 30.0,
        text_detectors: Sequence[TextLanguageDetector] = (),
    ):
        self._provider = speech_provider
        self._rules = rules or LanguageRules()
        self._timeout = timeout
        self._text_detectors = tuple(text_detectors)

    def identify(
        self,
        audio_or_text: AudioClip | str,
        hint_languages: Sequence[str] = (),
        cancel_token: CancellationToken | None = None,
    ) -> LanguageCandidates:
        """
        Rank candidate languages, most confident first.

        Args:
            audio_or_text:  An AudioClip for spoken language, or text.
            hint_languages: Optional locales; the first is the primary and
                            the rest replace the configured alternates.
            cancel_token:   Optional cancellation token.

        Returns:
            Non-empty list of (language_code, confidence), descending.

        Raises:
            InsufficientInputError: Empty audio or text.
            ProviderError:          The recognition call failed or timed out.
            CancelledError:         The token was cancelled while waiting.
        """
        if isinstance(audio_or_text, str):
            return self.identify_text(audio_or_text, hint_languages, cancel_token)

        if audio_or_text is None or not audio_or_text.data:
            raise InsufficientInputError("language_detection", "audio is empty")

        primary = hint_languages[0] if hint_languages else self._rules.detection_primary
        if len(hint_languages) > 1:
            alternates = tuple(code for code in hint_languages[1:] if code != primary)
        else:
            alternates = self._rules.detection_alternates_for(primary)

        results = call_with_timeout(
            lambda: self._provider.recognize(audio_or_text, primary, alternates),
            timeout=self._timeout,
            provider=self._provider.name,
            cancel_token=cancel_token,
        )

        candidates = _rank_languages(results)
        if not candidates:
            logger.warning(
                "No language candidates reported for %s — assuming primary %s.",
                audio_or_text.filename, primary,
            )
            return [(primary, 0.0)]

        top_code, top_confidence = candidates[0]
        logger.info(
            "Language detected: %s (%s), confidence %.2f, %d candidate(s).",
            language_name(top_code), top_code, top_confidence, len(candidates),
        )
        return candidates

    def identify_text(
        self,
        text: str,
        hint_languages: Sequence[str] = (),
        cancel_token: CancellationToken | None = None,
    ) -> LanguageCandidates:
        """
        Rank the language of a text using the configured detectors in order.

        Falls back to the first hint (or the primary detection language)
        with confidence 0.0 when no detector is available or all fail.
        """
        if not text or not text.strip():
            raise InsufficientInputError("language_detection", "text is empty")

        for detector in self._text_detectors:
            try:
                detected = call_with_timeout(
                    lambda detector=detector: detector.detect(text),
                    timeout=self._timeout,
                    provider=detector.name,
                    cancel_token=cancel_token,
                )
            except ProviderError as exc:
                logger.warning("Text language detection via %s failed: %s", detector.name, exc)
                continue
            if detected:
                code, confidence = detected
                return [(base_language(code), max(0.0, min(1.0, confidence)))]

        fallback = hint_languages[0] if hint_languages else self._rules.detection_primary
        return [(base_language(fallback), 0.0)]


def _rank_languages(results: list[RecognitionResult]) -> LanguageCandidates:
    """Best confidence per reported language, ordered descending."""
    best: dict[str, float] = {}
    for result in results:
        for alternative in result.alternatives:
            code = alternative.language_code or result.language_code
            if not code:
                continue
            if alternative.confidence > best.get(code, -1.0):
                best[code] = alternative.confidence
    return sorted(best.items(), key=lambda item: item[1], reverse=True)

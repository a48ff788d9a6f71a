"""
src/stt/providers.py
=====================
Speech-to-Text Provider Interface — Voicemail Pipeline

Responsibility:
    - Define the capability every speech provider implements:
        recognize(audio, language, alternates)         short-form, blocking
        start_long_running(audio, language, alternates) long-form, pollable
    - Define the recognition result types shared by the language
      identifier and the transcriber

A provider reports *all* alternatives with their confidence; filtering by
confidence is the caller's policy, not the provider's.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence

from src.audio.store import AudioClip

logger = logging.getLogger("voicemail.stt.providers")


@dataclass(frozen=True)
class RecognitionAlternative:
    """One hypothesis for a recognized segment."""

    transcript: str
    confidence: float
    language_code: str | None = None


@dataclass(frozen=True)
class RecognitionResult:
    """One recognized segment with its ranked alternatives."""

    alternatives: tuple[RecognitionAlternative, ...]
    language_code: str | None = None


class LongRunningOperation:
    """Handle for a background recognition job; poll ``done()`` then read ``result()``."""

    def __init__(self, provider: str, future: Future):
        self.provider = provider
        self._future = future

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> list[RecognitionResult]:
        """Return the results of a finished job; re-raises the job's error."""
        return self._future.result(timeout=0)

    def cancel(self) -> None:
        self._future.cancel()


class SpeechProvider(ABC):
    """Speech-to-text capability consumed by LanguageIdentifier and Transcriber."""

    name: str = "speech"

    @abstractmethod
    def recognize(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str] = (),
    ) -> list[RecognitionResult]:
        """
        Short-form recognition.

        Returns an empty list when the audio is outside the short-form
        limits or nothing was recognized.

        Raises:
            ProviderError: If the provider call fails.
        """

    def long_running_recognize(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str] = (),
    ) -> list[RecognitionResult]:
        """Blocking long-form recognition; providers override when they differ."""
        return self.recognize(audio, language_code, alternate_languages)

    def start_long_running(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str] = (),
    ) -> LongRunningOperation:
        """Start long-form recognition in the background and return a pollable handle."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"lro-{self.name}")
        future = executor.submit(
            self.long_running_recognize, audio, language_code, tuple(alternate_languages),
        )
        executor.shutdown(wait=False)
        logger.info("%s long-running recognition started (%s).", self.name, language_code)
        return LongRunningOperation(self.name, future)

"""
tests/fakes.py
===============
Offline stand-ins for the pipeline's external collaborators.

Every fake implements the real capability interface (SpeechProvider,
TranslationBackend, AudioStore) and records its calls so tests can assert
on what was (or was not) attempted.
"""

import os
import sys
import threading
import time

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.audio.store import AudioClip, AudioStore
from src.config import ProviderConfig
from src.exceptions import AudioUnavailableError
from src.schemas.voicemail import QualityTier
from src.stt.providers import RecognitionAlternative, RecognitionResult, SpeechProvider
from src.translation.backends import BackendTranslation, TranslationBackend


def segment(text: str, confidence: float, language: str | None = "en-US") -> RecognitionResult:
    """One recognized segment with a single alternative."""
    return RecognitionResult(
        alternatives=(RecognitionAlternative(text, confidence, language),),
        language_code=language,
    )


class FakeAudioStore(AudioStore):
    def __init__(self, missing: tuple[str, ...] = ()):
        self.missing = set(missing)
        self.fetched: list[str] = []

    def fetch(self, audio_ref: str) -> AudioClip:
        self.fetched.append(audio_ref)
        if audio_ref in self.missing:
            raise AudioUnavailableError(audio_ref, "not found")
        return AudioClip(data=b"RIFF-fake-audio", filename="voicemail.wav")


class FakeSpeechProvider(SpeechProvider):
    """
    Scripted speech provider.

    ``short_results`` / ``long_results`` are returned by the short-form and
    long-form paths. ``short_errors`` is a list of exceptions raised by the
    first N short-form calls, in order.
    """

    name = "FakeSpeech"

    def __init__(
        self,
        short_results=(),
        long_results=(),
        *,
        short_errors=(),
        long_error: Exception | None = None,
        short_delay: float = 0.0,
        long_delay: float = 0.0,
    ):
        self.short_results = list(short_results)
        self.long_results = list(long_results)
        self.short_errors = list(short_errors)
        self.long_error = long_error
        self.short_delay = short_delay
        self.long_delay = long_delay
        self.calls: list[tuple[str, str, tuple[str, ...]]] = []
        self._lock = threading.Lock()

    def recognize(self, audio, language_code, alternate_languages=()):
        with self._lock:
            self.calls.append(("short", language_code, tuple(alternate_languages)))
            error = self.short_errors.pop(0) if self.short_errors else None
        if self.short_delay:
            time.sleep(self.short_delay)
        if error is not None:
            raise error
        return list(self.short_results)

    def long_running_recognize(self, audio, language_code, alternate_languages=()):
        with self._lock:
            self.calls.append(("long", language_code, tuple(alternate_languages)))
        if self.long_delay:
            time.sleep(self.long_delay)
        if self.long_error is not None:
            raise self.long_error
        return list(self.long_results)

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class FakeBackend(TranslationBackend):
    """
    Scripted translation backend.

    Translates to "[name] text" unless ``translation`` is given. ``error``
    is raised on every call; ``fail_on`` raises it only for those texts.
    """

    def __init__(
        self,
        name: str,
        priority: int,
        *,
        quality: QualityTier = QualityTier.STANDARD,
        languages: frozenset[str] = frozenset(),
        enabled: bool = True,
        cost_per_character: float = 0.0,
        translation: str | None = None,
        confidence: float | None = None,
        error: Exception | None = None,
        fail_on: tuple[str, ...] = (),
        delay: float = 0.0,
    ):
        super().__init__(ProviderConfig(
            name=name,
            enabled=enabled,
            priority=priority,
            supported_languages=languages,
            cost_per_character=cost_per_character,
            quality_tier=quality,
        ))
        self.translation = translation
        self.confidence = confidence
        self.error = error
        self.fail_on = set(fail_on)
        self.delay = delay
        self.calls: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def translate(self, text, source_language, target_language):
        with self._lock:
            self.calls.append((text, source_language, target_language))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None and (not self.fail_on or text in self.fail_on):
            raise self.error
        return BackendTranslation(
            text=self.translation if self.translation is not None else f"[{self.name}] {text}",
            detected_source=None,
            confidence=self.confidence,
            metadata={"characters_billed": len(text)},
        )


class FakeDetectingBackend(FakeBackend):
    """FakeBackend that can also detect the language of a text."""

    def __init__(
        self,
        name: str,
        priority: int,
        detected: tuple[str, float] | None,
        detect_error: Exception | None = None,
        **kwargs,
    ):
        super().__init__(name, priority, **kwargs)
        self.detected = detected
        self.detect_error = detect_error
        self.detect_calls = 0

    def detect(self, text):
        self.detect_calls += 1
        if self.detect_error is not None:
            raise self.detect_error
        return self.detected

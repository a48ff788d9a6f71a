"""
tests/test_language_detector.py
================================
Language Identification Tests

Test categories:
    1. Candidate ranking from recognition results
    2. Primary / alternate selection (hints and per-primary tables)
    3. Fallback when the provider reports no language
    4. Input validation and provider failures
    5. Text language detection through translation backends

All tests are offline — the speech provider and detectors are fakes.
"""

import os
import sys
import threading
import time
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.audio.store import AudioClip
from src.concurrency import CancellationToken
from src.config import LanguageRules
from src.exceptions import (
    CancelledError,
    InsufficientInputError,
    ProviderError,
    ProviderTimeoutError,
)
from src.stt.language_detector import LanguageIdentifier
from src.stt.providers import RecognitionAlternative, RecognitionResult
from tests.fakes import FakeDetectingBackend, FakeSpeechProvider, segment

CLIP = AudioClip(data=b"RIFF-fake-audio", filename="voicemail.wav")


# =====================================================================
# 1. Ranking
# =====================================================================


class TestRanking(unittest.TestCase):

    def test_candidates_sorted_by_confidence(self):
        provider = FakeSpeechProvider([
            segment("hello", 0.6, "en-US"),
            segment("hola", 0.9, "es-ES"),
        ])
        candidates = LanguageIdentifier(provider).identify(CLIP)
        self.assertEqual(candidates, [("es-ES", 0.9), ("en-US", 0.6)])

    def test_best_confidence_per_language(self):
        provider = FakeSpeechProvider([
            segment("hola", 0.5, "es-ES"),
            segment("buenos dias", 0.8, "es-ES"),
        ])
        candidates = LanguageIdentifier(provider).identify(CLIP)
        self.assertEqual(candidates, [("es-ES", 0.8)])

    def test_segment_language_used_when_alternative_has_none(self):
        result = RecognitionResult(
            alternatives=(RecognitionAlternative("bonjour", 0.75, None),),
            language_code="fr-FR",
        )
        candidates = LanguageIdentifier(FakeSpeechProvider([result])).identify(CLIP)
        self.assertEqual(candidates, [("fr-FR", 0.75)])


# =====================================================================
# 2. Primary / alternates
# =====================================================================


class TestCandidateSelection(unittest.TestCase):

    def test_default_primary_and_alternates(self):
        provider = FakeSpeechProvider([segment("hello", 0.9)])
        LanguageIdentifier(provider).identify(CLIP)
        self.assertEqual(
            provider.calls[0], ("short", "en-US", ("es-ES", "fr-FR", "de-DE", "it-IT")),
        )

    def test_single_hint_uses_configured_alternates(self):
        provider = FakeSpeechProvider([segment("hola", 0.9, "es-ES")])
        LanguageIdentifier(provider).identify(CLIP, ("es-ES",))
        self.assertEqual(provider.calls[0], ("short", "es-ES", ("fr-FR", "de-DE", "it-IT")))

    def test_per_primary_alternates(self):
        rules = LanguageRules(detection_alternates_by_primary={"es-MX": ("en-US",)})
        provider = FakeSpeechProvider([segment("hola", 0.9, "es-MX")])
        LanguageIdentifier(provider, rules).identify(CLIP, ("es-MX",))
        self.assertEqual(provider.calls[0], ("short", "es-MX", ("en-US",)))

    def test_explicit_hints_replace_alternates(self):
        provider = FakeSpeechProvider([segment("ciao", 0.9, "it-IT")])
        LanguageIdentifier(provider).identify(CLIP, ("it-IT", "de-DE", "it-IT"))
        self.assertEqual(provider.calls[0], ("short", "it-IT", ("de-DE",)))


# =====================================================================
# 3. Fallback
# =====================================================================


class TestFallback(unittest.TestCase):

    def test_no_results_returns_primary_with_zero_confidence(self):
        identifier = LanguageIdentifier(FakeSpeechProvider([]))
        self.assertEqual(identifier.identify(CLIP, ("fr-FR",)), [("fr-FR", 0.0)])

    def test_results_without_language_return_primary(self):
        provider = FakeSpeechProvider([segment("mumble", 0.4, None)])
        self.assertEqual(LanguageIdentifier(provider).identify(CLIP), [("en-US", 0.0)])


# =====================================================================
# 4. Validation and failures
# =====================================================================


class TestFailures(unittest.TestCase):

    def test_empty_audio_raises(self):
        identifier = LanguageIdentifier(FakeSpeechProvider())
        with self.assertRaises(InsufficientInputError) as ctx:
            identifier.identify(AudioClip(data=b"", filename="empty.wav"))
        self.assertEqual(ctx.exception.stage, "language_detection")

    def test_provider_error_propagates(self):
        provider = FakeSpeechProvider(short_errors=[ProviderError("FakeSpeech", "boom")])
        with self.assertRaises(ProviderError):
            LanguageIdentifier(provider).identify(CLIP)

    def test_slow_provider_times_out(self):
        provider = FakeSpeechProvider([segment("hi", 0.9)], short_delay=0.5)
        identifier = LanguageIdentifier(provider, timeout=0.05)
        with self.assertRaises(ProviderTimeoutError):
            identifier.identify(CLIP)

    def test_cancelled_token(self):
        token = CancellationToken()
        token.cancel()
        provider = FakeSpeechProvider([segment("hi", 0.9)])
        with self.assertRaises(CancelledError):
            LanguageIdentifier(provider).identify(CLIP, cancel_token=token)
        self.assertEqual(provider.calls, [])

    def test_cancel_while_waiting(self):
        token = CancellationToken()
        provider = FakeSpeechProvider([segment("hi", 0.9)], short_delay=0.5)
        identifier = LanguageIdentifier(provider, timeout=5.0)

        started = time.monotonic()
        token_timer = _cancel_after(token, 0.05)
        with self.assertRaises(CancelledError):
            identifier.identify(CLIP, cancel_token=token)
        token_timer.join()
        self.assertLess(time.monotonic() - started, 0.5)


# =====================================================================
# 5. Text detection
# =====================================================================


class TestTextDetection(unittest.TestCase):

    def test_string_input_uses_text_detectors(self):
        detector = FakeDetectingBackend("GoogleTranslate", 1, detected=("es", 0.97))
        identifier = LanguageIdentifier(FakeSpeechProvider(), text_detectors=[detector])
        self.assertEqual(identifier.identify("Hola, llámame"), [("es", 0.97)])
        self.assertEqual(detector.detect_calls, 1)

    def test_failing_detector_is_skipped(self):
        failing = _RaisingDetector()
        working = FakeDetectingBackend("MicrosoftTranslator", 3, detected=("fr-FR", 0.8))
        identifier = LanguageIdentifier(
            FakeSpeechProvider(), text_detectors=[failing, working],
        )
        self.assertEqual(identifier.identify_text("Bonjour"), [("fr", 0.8)])

    def test_no_detector_falls_back_to_hint(self):
        identifier = LanguageIdentifier(FakeSpeechProvider())
        self.assertEqual(identifier.identify_text("Guten Tag", ("de-DE",)), [("de", 0.0)])

    def test_empty_text_raises(self):
        with self.assertRaises(InsufficientInputError):
            LanguageIdentifier(FakeSpeechProvider()).identify_text("   ")


class _RaisingDetector:
    name = "Broken"

    def detect(self, text):
        raise ProviderError(self.name, "detect failed")


def _cancel_after(token: CancellationToken, seconds: float) -> threading.Timer:
    timer = threading.Timer(seconds, token.cancel)
    timer.start()
    return timer


if __name__ == "__main__":
    unittest.main()

"""
tests/test_translation.py
==========================
Translation Orchestrator Tests

Test categories:
    1. Short-circuits (empty text, same language, source detection)
    2. Provider chain selection (priority, enablement, languages, tiers,
       preferred provider)
    3. Failover and exhaustion
    4. Translation memory (serve, write rule, approval)
    5. Usage counters
    6. Batch translation
    7. Statistics

All tests are offline — every backend is a fake.
"""

import os
import sys
import threading
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.concurrency import CancellationToken
from src.exceptions import (
    AllProvidersExhaustedError,
    BatchSizeExceededError,
    CancelledError,
    ProviderError,
    RateLimitedError,
)
from src.schemas.voicemail import TRANSLATION_MEMORY_PROVIDER, QualityTier
from src.translation.memory import TranslationMemory, normalize_text
from src.translation.orchestrator import TranslationOrchestrator
from src.translation.usage import UsageTracker
from tests.fakes import FakeBackend, FakeDetectingBackend

ORCHESTRATOR_LOGGER = "voicemail.translation.orchestrator"


def _orchestrator(*backends, **kwargs) -> TranslationOrchestrator:
    kwargs.setdefault("timeout", 1.0)
    return TranslationOrchestrator(list(backends), **kwargs)


# =====================================================================
# 1. Short-circuits
# =====================================================================


class TestShortCircuits(unittest.TestCase):

    def test_empty_text_is_a_successful_no_op(self):
        backend = FakeBackend("GoogleTranslate", 1)
        result = _orchestrator(backend).translate("", "es", "en")
        self.assertTrue(result.success)
        self.assertEqual(result.translated_text, "")
        self.assertEqual(result.character_count, 0)
        self.assertEqual(backend.calls, [])

    def test_same_language_makes_no_provider_call(self):
        backend = FakeBackend("GoogleTranslate", 1)
        result = _orchestrator(backend).translate("Hello there", "en-US", "en")
        self.assertTrue(result.success)
        self.assertEqual(result.translated_text, "Hello there")
        self.assertIsNone(result.provider)
        self.assertEqual(backend.calls, [])

    def test_auto_source_detected_through_backend(self):
        detector = FakeDetectingBackend("GoogleTranslate", 1, detected=("en", 0.99))
        result = _orchestrator(detector).translate("Hello there", "auto", "en")
        self.assertEqual(result.source_language, "en")
        self.assertEqual(detector.detect_calls, 1)
        self.assertEqual(detector.calls, [])

    def test_broken_detector_falls_through_to_the_next(self):
        broken = FakeDetectingBackend(
            "GoogleTranslate", 1, detected=None, detect_error=AttributeError("no 'data'"),
        )
        working = FakeDetectingBackend("MicrosoftTranslator", 3, detected=("es", 0.9))
        result = _orchestrator(broken, working).translate("Hola amigo", "auto", "en")
        self.assertEqual(result.source_language, "es")
        self.assertEqual((broken.detect_calls, working.detect_calls), (1, 1))

    def test_auto_source_without_detector_is_passed_through(self):
        backend = FakeBackend("DeepL", 1)
        result = _orchestrator(backend).translate("Hola", "auto", "en")
        self.assertEqual(backend.calls, [("Hola", "auto", "en")])
        self.assertEqual(result.source_language, "auto")


# =====================================================================
# 2. Provider chain
# =====================================================================


class TestProviderChain(unittest.TestCase):

    def test_ascending_priority(self):
        chain = _orchestrator(
            FakeBackend("OpenAI", 4), FakeBackend("GoogleTranslate", 1), FakeBackend("DeepL", 2),
        ).provider_chain("es", "en")
        self.assertEqual([b.name for b in chain], ["GoogleTranslate", "DeepL", "OpenAI"])

    def test_disabled_and_unsupported_are_skipped(self):
        chain = _orchestrator(
            FakeBackend("GoogleTranslate", 1, enabled=False),
            FakeBackend("DeepL", 2, languages=frozenset({"en", "de"})),
            FakeBackend("MicrosoftTranslator", 3),
        ).provider_chain("ko", "en")
        self.assertEqual([b.name for b in chain], ["MicrosoftTranslator"])

    def test_tiers_above_the_request_are_skipped(self):
        chain = _orchestrator(
            FakeBackend("GoogleTranslate", 1, quality=QualityTier.STANDARD),
            FakeBackend("DeepL", 2, quality=QualityTier.HIGH),
            FakeBackend("OpenAI", 4, quality=QualityTier.PREMIUM),
        ).provider_chain("es", "en", QualityTier.HIGH)
        self.assertEqual([b.name for b in chain], ["GoogleTranslate", "DeepL"])

    def test_preferred_provider_goes_first(self):
        google = FakeBackend("GoogleTranslate", 1)
        deepl = FakeBackend("DeepL", 2)
        result = _orchestrator(google, deepl).translate(
            "Hola", "es", "en", preferred_provider="DeepL",
        )
        self.assertEqual(result.provider, "DeepL")
        self.assertEqual(google.calls, [])

    def test_unknown_preferred_provider_keeps_order(self):
        chain = _orchestrator(
            FakeBackend("GoogleTranslate", 1), FakeBackend("DeepL", 2),
        ).provider_chain("es", "en", preferred_provider="Nope")
        self.assertEqual([b.name for b in chain], ["GoogleTranslate", "DeepL"])


# =====================================================================
# 3. Failover
# =====================================================================


class TestFailover(unittest.TestCase):

    def test_third_provider_succeeds_after_two_failures(self):
        first = FakeBackend("GoogleTranslate", 1, error=ProviderError("GoogleTranslate", "HTTP 500"))
        second = FakeBackend("DeepL", 2, error=RateLimitedError("DeepL", 30))
        third = FakeBackend("MicrosoftTranslator", 3, translation="Hello, call me back")

        with self.assertLogs(ORCHESTRATOR_LOGGER, level="WARNING") as logs:
            result = _orchestrator(first, second, third).translate("Hola, llámame", "es", "en")

        self.assertTrue(result.success)
        self.assertEqual(result.provider, "MicrosoftTranslator")
        self.assertEqual(result.translated_text, "Hello, call me back")
        self.assertEqual(
            [f["provider"] for f in result.provider_metadata["failures"]],
            ["GoogleTranslate", "DeepL"],
        )
        self.assertEqual(len(logs.records), 2)
        self.assertEqual(len(first.calls), 1)
        self.assertEqual(len(second.calls), 1)

    def test_timeout_moves_to_next_provider(self):
        slow = FakeBackend("GoogleTranslate", 1, delay=0.5)
        fast = FakeBackend("DeepL", 2)
        result = _orchestrator(slow, fast, timeout=0.05).translate("Hola", "es", "en")
        self.assertEqual(result.provider, "DeepL")
        self.assertIn("timed out", result.provider_metadata["failures"][0]["reason"])

    def test_all_providers_fail(self):
        first = FakeBackend("GoogleTranslate", 1, error=ProviderError("GoogleTranslate", "down"))
        second = FakeBackend("DeepL", 2, error=ProviderError("DeepL", "quota"))
        with self.assertRaises(AllProvidersExhaustedError) as ctx:
            _orchestrator(first, second).translate("Hola", "es", "en")
        self.assertEqual(
            [(f.provider, f.reason) for f in ctx.exception.failures],
            [("GoogleTranslate", "down"), ("DeepL", "quota")],
        )

    def test_no_eligible_provider(self):
        only = FakeBackend("DeepL", 2, languages=frozenset({"en", "de"}))
        with self.assertRaises(AllProvidersExhaustedError) as ctx:
            _orchestrator(only).translate("Xin chào", "vi", "en")
        self.assertEqual(ctx.exception.failures, [])
        self.assertEqual(only.calls, [])

    def test_confidence_defaults_to_one(self):
        result = _orchestrator(FakeBackend("GoogleTranslate", 1)).translate("Hola", "es", "en")
        self.assertEqual(result.confidence, 1.0)

    def test_reported_confidence_is_kept(self):
        backend = FakeBackend("MicrosoftTranslator", 1, confidence=0.83)
        result = _orchestrator(backend).translate("Hola", "es", "en")
        self.assertEqual(result.confidence, 0.83)

    def test_unexpected_backend_error_moves_to_next_provider(self):
        broken = FakeBackend("GoogleTranslate", 1, error=RuntimeError("sdk blew up"))
        healthy = FakeBackend("DeepL", 2, translation="Hello")
        orchestrator = _orchestrator(broken, healthy)

        with self.assertLogs(ORCHESTRATOR_LOGGER, level="WARNING") as logs:
            result = orchestrator.translate("Hola", "es", "en")

        self.assertEqual(result.provider, "DeepL")
        self.assertEqual(result.translated_text, "Hello")
        self.assertEqual(
            result.provider_metadata["failures"],
            [{"provider": "GoogleTranslate", "reason": "RuntimeError: sdk blew up"}],
        )
        self.assertEqual(len(logs.records), 1)
        self.assertEqual(orchestrator.usage.get("GoogleTranslate").failures, 1)

    def test_unexpected_errors_everywhere_exhaust_the_chain(self):
        broken = FakeBackend("GoogleTranslate", 1, error=KeyError("translations"))
        with self.assertRaises(AllProvidersExhaustedError) as ctx:
            _orchestrator(broken).translate("Hola", "es", "en")
        self.assertEqual(ctx.exception.failures[0].provider, "GoogleTranslate")
        self.assertIn("KeyError", ctx.exception.failures[0].reason)

    def test_cancelled_token_stops_the_chain(self):
        token = CancellationToken()
        token.cancel()
        backend = FakeBackend("GoogleTranslate", 1)
        with self.assertRaises(CancelledError):
            _orchestrator(backend).translate("Hola", "es", "en", cancel_token=token)
        self.assertEqual(backend.calls, [])


# =====================================================================
# 4. Translation memory
# =====================================================================


class TestTranslationMemory(unittest.TestCase):

    def test_high_tier_result_is_served_from_memory(self):
        deepl = FakeBackend("DeepL", 2, quality=QualityTier.HIGH, translation="Good morning")
        orchestrator = _orchestrator(deepl)

        first = orchestrator.translate("Buenos días", "es", "en")
        second = orchestrator.translate("  buenos   DÍAS ", "es", "en")

        self.assertEqual(first.provider, "DeepL")
        self.assertEqual(second.provider, TRANSLATION_MEMORY_PROVIDER)
        self.assertEqual(second.translated_text, "Good morning")
        self.assertEqual(second.provider_metadata["original_provider"], "DeepL")
        self.assertEqual(len(deepl.calls), 1)

    def test_memory_hit_confidence_is_quality_score(self):
        memory = TranslationMemory()
        memory.save("Hola", "Hello", "es", "en", quality_score=0.9, provider="DeepL")
        result = _orchestrator(FakeBackend("GoogleTranslate", 1), memory=memory).translate(
            "Hola", "es", "en",
        )
        self.assertEqual(result.provider, TRANSLATION_MEMORY_PROVIDER)
        self.assertEqual(result.confidence, 0.9)

    def test_standard_tier_result_is_not_stored(self):
        google = FakeBackend("GoogleTranslate", 1, quality=QualityTier.STANDARD)
        orchestrator = _orchestrator(google)
        orchestrator.translate("Hola", "es", "en")
        orchestrator.translate("Hola", "es", "en")
        self.assertEqual(len(google.calls), 2)
        self.assertEqual(len(orchestrator.memory), 0)

    def test_memory_threshold_is_configurable(self):
        google = FakeBackend("GoogleTranslate", 1, quality=QualityTier.STANDARD)
        orchestrator = _orchestrator(google, memory_min_quality=QualityTier.STANDARD)
        orchestrator.translate("Hola", "es", "en")
        self.assertEqual(len(orchestrator.memory), 1)

    def test_memory_disabled(self):
        deepl = FakeBackend("DeepL", 2, quality=QualityTier.HIGH)
        orchestrator = _orchestrator(deepl, memory_enabled=False)
        orchestrator.translate("Hola", "es", "en")
        orchestrator.translate("Hola", "es", "en")
        self.assertEqual(len(deepl.calls), 2)
        self.assertEqual(len(orchestrator.memory), 0)

    def test_unapproved_entry_is_not_served(self):
        memory = TranslationMemory()
        memory.save("Hola", "Hi", "es", "en", approved=False)
        backend = FakeBackend("GoogleTranslate", 1)
        result = _orchestrator(backend, memory=memory).translate("Hola", "es", "en")
        self.assertEqual(result.provider, "GoogleTranslate")

    def test_lookup_bumps_usage(self):
        memory = TranslationMemory()
        memory.save("Hola", "Hello", "es-MX", "en")
        memory.lookup("hola", "es", "en-US")
        entry = memory.lookup("HOLA", "es", "en")
        self.assertEqual(entry.usage_count, 3)
        self.assertGreaterEqual(entry.last_used, entry.created_at)

    def test_save_keeps_the_first_translation(self):
        memory = TranslationMemory()
        memory.save("Hola", "Hello", "es", "en")
        memory.save("Hola", "Hi", "es", "en")
        self.assertEqual(memory.lookup("Hola", "es", "en").translated_text, "Hello")
        self.assertEqual(len(memory), 1)

    def test_set_approved(self):
        memory = TranslationMemory()
        memory.save("Hola", "Hello", "es", "en")
        self.assertTrue(memory.set_approved("Hola", "es", "en", False))
        self.assertIsNone(memory.lookup("Hola", "es", "en"))
        self.assertFalse(memory.set_approved("Adiós", "es", "en", True))

    def test_concurrent_lookups_count_every_hit(self):
        memory = TranslationMemory()
        memory.save("Hola", "Hello", "es", "en")

        threads = [
            threading.Thread(target=memory.lookup, args=("Hola", "es", "en"))
            for _ in range(50)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(memory.entries()[0].usage_count, 51)

    def test_normalize_text(self):
        self.assertEqual(normalize_text("  Hola\tMUNDO \n"), "hola mundo")


# =====================================================================
# 5. Usage counters
# =====================================================================


class TestUsage(unittest.TestCase):

    def test_attempts_successes_and_failures(self):
        failing = FakeBackend(
            "GoogleTranslate", 1, error=ProviderError("GoogleTranslate", "down"),
            cost_per_character=0.5,
        )
        working = FakeBackend("DeepL", 2, cost_per_character=0.25)
        orchestrator = _orchestrator(failing, working)

        orchestrator.translate("abcd", "es", "en")

        google = orchestrator.usage.get("GoogleTranslate")
        deepl = orchestrator.usage.get("DeepL")
        self.assertEqual((google.attempts, google.successes, google.failures), (1, 0, 1))
        self.assertEqual(google.estimated_cost, 0.0)
        self.assertEqual((deepl.attempts, deepl.successes, deepl.failures), (1, 1, 0))
        self.assertEqual(deepl.characters, 4)
        self.assertEqual(deepl.estimated_cost, 1.0)

    def test_cancellation_mid_call_counts_the_attempt(self):
        token = CancellationToken()
        slow = FakeBackend("GoogleTranslate", 1, delay=1.0)
        orchestrator = _orchestrator(slow, timeout=5.0)
        threading.Timer(0.05, token.cancel).start()

        with self.assertRaises(CancelledError):
            orchestrator.translate("Hola", "es", "en", cancel_token=token)

        usage = orchestrator.usage.get("GoogleTranslate")
        self.assertEqual((usage.attempts, usage.successes, usage.failures), (1, 0, 1))

    def test_unknown_provider_has_empty_usage(self):
        self.assertEqual(UsageTracker().get("Nope").attempts, 0)

    def test_concurrent_records(self):
        tracker = UsageTracker()
        threads = [
            threading.Thread(target=tracker.record, args=("DeepL", 10, True))
            for _ in range(100)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        usage = tracker.get("DeepL")
        self.assertEqual(usage.attempts, 100)
        self.assertEqual(usage.characters, 1000)


# =====================================================================
# 6. Batch translation
# =====================================================================


class TestBatch(unittest.TestCase):

    def test_oversized_batch_rejected_before_any_call(self):
        backend = FakeBackend("GoogleTranslate", 1)
        with self.assertRaises(BatchSizeExceededError) as ctx:
            _orchestrator(backend).translate_batch(["hola"] * 101, "en", "es")
        self.assertEqual((ctx.exception.size, ctx.exception.limit), (101, 100))
        self.assertEqual(backend.calls, [])

    def test_batch_at_the_limit_is_accepted(self):
        backend = FakeBackend("GoogleTranslate", 1)
        result = _orchestrator(backend, max_batch_size=5).translate_batch(["hola"] * 5, "en", "es")
        self.assertEqual(len(result.translations), 5)

    def test_results_keep_input_order(self):
        backend = FakeBackend("GoogleTranslate", 1)
        texts = ["uno", "dos", "tres", "cuatro", "cinco"]
        result = _orchestrator(backend).translate_batch(texts, "en", "es")
        self.assertEqual(
            [t.translated_text for t in result.translations],
            [f"[GoogleTranslate] {text}" for text in texts],
        )
        self.assertEqual(result.provider_usage, {"GoogleTranslate": 5})
        self.assertEqual(result.total_character_count, sum(len(t) for t in texts))

    def test_failed_item_does_not_fail_the_batch(self):
        backend = FakeBackend(
            "GoogleTranslate", 1,
            error=ProviderError("GoogleTranslate", "bad text"), fail_on=("dos",),
        )
        result = _orchestrator(backend).translate_batch(["uno", "dos", "tres"], "en", "es")
        self.assertTrue(result.success)
        self.assertEqual([t.success for t in result.translations], [True, False, True])
        self.assertIn("bad text", result.translations[1].error_message)
        self.assertEqual(result.provider_usage, {"GoogleTranslate": 2})

    def test_cancelled_batch_raises(self):
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(CancelledError):
            _orchestrator(FakeBackend("GoogleTranslate", 1)).translate_batch(
                ["uno"], "en", "es", cancel_token=token,
            )

    def test_empty_batch(self):
        result = _orchestrator(FakeBackend("GoogleTranslate", 1)).translate_batch([], "en")
        self.assertEqual(result.translations, [])
        self.assertFalse(result.success)


# =====================================================================
# 7. Statistics
# =====================================================================


class TestStatistics(unittest.TestCase):

    def test_statistics_shape(self):
        orchestrator = _orchestrator(
            FakeBackend("DeepL", 2, quality=QualityTier.HIGH),
            FakeBackend("GoogleTranslate", 1),
            FakeBackend("OpenAI", 4, enabled=False),
        )
        orchestrator.translate("Hola", "es", "en", preferred_provider="DeepL")

        stats = orchestrator.statistics()
        self.assertEqual(stats["provider_chain"], ["GoogleTranslate", "DeepL"])
        self.assertEqual(stats["providers"]["DeepL"]["successes"], 1)
        self.assertEqual(stats["translation_memory"], {"enabled": True, "entries": 1})

    def test_detectors_only_lists_overriding_backends(self):
        orchestrator = _orchestrator(
            FakeBackend("DeepL", 2),
            FakeDetectingBackend("GoogleTranslate", 1, detected=None),
        )
        self.assertEqual([b.name for b in orchestrator.detectors], ["GoogleTranslate"])


if __name__ == "__main__":
    unittest.main()

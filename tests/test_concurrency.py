"""
tests/test_concurrency.py
==========================
Timeout & Cancellation Tests

Test categories:
    1. call_with_timeout: results, errors, timeouts, cancellation
    2. CancellationToken sleep semantics
    3. Stage output verification

All tests are offline.
"""

import os
import sys
import threading
import time
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.concurrency import CancellationToken, call_with_timeout
from src.exceptions import (
    CancelledError,
    ProviderError,
    ProviderTimeoutError,
    StageVerificationError,
)
from src.schemas.voicemail import (
    Category,
    Classification,
    Priority,
    ProcessedVoicemail,
    ProcessingStatus,
    Sentiment,
    SpamVerdict,
    TranscriptResult,
    TranslationResult,
)
from src.stage_validator import (
    verify_classification,
    verify_record,
    verify_spam,
    verify_transcript,
    verify_translation,
)


# =====================================================================
# 1. call_with_timeout
# =====================================================================


class TestCallWithTimeout(unittest.TestCase):

    def test_returns_the_result(self):
        self.assertEqual(call_with_timeout(lambda: 42, timeout=1.0, provider="p"), 42)

    def test_propagates_errors_unchanged(self):
        def _fail():
            raise ProviderError("p", "boom")

        with self.assertRaises(ProviderError) as ctx:
            call_with_timeout(_fail, timeout=1.0, provider="p")
        self.assertEqual(ctx.exception.message, "boom")

    def test_timeout(self):
        started = time.monotonic()
        with self.assertRaises(ProviderTimeoutError) as ctx:
            call_with_timeout(lambda: time.sleep(1.0), timeout=0.1, provider="slow")
        self.assertEqual(ctx.exception.provider, "slow")
        self.assertIsInstance(ctx.exception, TimeoutError)
        self.assertLess(time.monotonic() - started, 0.5)

    def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        calls = []
        with self.assertRaises(CancelledError):
            call_with_timeout(lambda: calls.append(1), timeout=1.0, provider="p", cancel_token=token)
        self.assertEqual(calls, [])

    def test_cancelled_while_waiting(self):
        token = CancellationToken()
        threading.Timer(0.05, token.cancel).start()
        started = time.monotonic()
        with self.assertRaises(CancelledError):
            call_with_timeout(
                lambda: time.sleep(1.0), timeout=5.0, provider="p", cancel_token=token,
            )
        self.assertLess(time.monotonic() - started, 0.5)


# =====================================================================
# 2. CancellationToken
# =====================================================================


class TestCancellationToken(unittest.TestCase):

    def test_sleep_completes_when_not_cancelled(self):
        CancellationToken().sleep(0.01)

    def test_sleep_raises_when_cancelled(self):
        token = CancellationToken()
        threading.Timer(0.05, token.cancel).start()
        with self.assertRaises(CancelledError):
            token.sleep(1.0)
        self.assertTrue(token.is_cancelled)


# =====================================================================
# 3. Stage output verification
# =====================================================================


class TestStageVerification(unittest.TestCase):

    def test_empty_transcript(self):
        with self.assertRaises(StageVerificationError):
            verify_transcript(TranscriptResult(text="   "))

    def test_segment_confidence_out_of_range(self):
        with self.assertRaises(StageVerificationError):
            verify_transcript(TranscriptResult(text="hi", segment_confidences=(1.2,)))

    def test_spam_confidence_out_of_range(self):
        with self.assertRaises(StageVerificationError):
            verify_spam(SpamVerdict(is_spam=True, confidence=1.5))

    def test_spam_must_be_low_priority(self):
        classification = Classification(Sentiment.NEUTRAL, Category.GENERAL, Priority.MEDIUM)
        verify_classification(classification, is_spam=False)
        with self.assertRaises(StageVerificationError):
            verify_classification(classification, is_spam=True)

    def test_translation_confidence_out_of_range(self):
        with self.assertRaises(StageVerificationError):
            verify_translation(TranslationResult(True, "Hello", "es", confidence=-0.1))

    def test_completed_record_needs_analysis(self):
        record = ProcessedVoicemail(caller_number="+1", audio_ref="vm", transcript="hi")
        record.status = ProcessingStatus.COMPLETED
        with self.assertRaises(StageVerificationError):
            verify_record(record)

    def test_non_terminal_record(self):
        with self.assertRaises(StageVerificationError):
            verify_record(ProcessedVoicemail(caller_number="+1", audio_ref="vm"))

    def test_failed_record_without_analysis_is_valid(self):
        record = ProcessedVoicemail(caller_number="+1", audio_ref="vm")
        record.status = ProcessingStatus.FAILED
        verify_record(record)


if __name__ == "__main__":
    unittest.main()

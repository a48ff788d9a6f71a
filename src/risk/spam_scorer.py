"""
src/risk/spam_scorer.py
========================
Spam Scorer — Voicemail Pipeline

Responsibility:
    - Compute a spam verdict (is_spam, confidence, reasons) from the caller
      number and the transcript text

Scoring philosophy:
    - Each signal is evaluated independently and, when triggered, adds a
      fixed increment to a running confidence
    - Signals are evaluated in a fixed order; the reasons list follows it
    - Final confidence = min(sum of increments, 1.0)
    - is_spam = confidence > threshold

Weights, threshold, keyword tables and the number registry are injected
(SpamRules / SpamNumberRegistry); nothing is hard-coded here.

This module does NOT:
    - Call any external API
    - Raise on malformed input (missing values simply trigger no signal)
"""

import logging

from src.config import SpamRules
from src.risk.registry import SpamNumberRegistry, StaticSpamRegistry
from src.schemas.voicemail import SpamVerdict

logger = logging.getLogger("voicemail.risk.spam_scorer")


REASON_KNOWN_NUMBER = "Known spam number"
REASON_ROBOCALL = "Robocall pattern detected"
REASON_URGENCY = "Urgency tactics detected"


def _keyword_reason(hits: int) -> str:
    return f"Contains {hits} spam keywords"


class SpamScorer:
    """Pure, deterministic spam scoring over (caller number, transcript)."""

    def __init__(
        self,
        rules: SpamRules | None = None,
        registry: SpamNumberRegistry | None = None,
    ):
        self._rules = rules or SpamRules()
        self._registry = registry or StaticSpamRegistry(self._rules.known_spam_numbers)

    def score(self, caller_number: str | None, transcript: str | None) -> SpamVerdict:
        """
        Score one voicemail.

        Args:
            caller_number: Caller phone number; None or empty triggers nothing.
            transcript:    Transcript text; None or empty triggers nothing.

        Returns:
            SpamVerdict with confidence clamped to [0.0, 1.0] and one reason
            per triggered signal, in evaluation order.
        """
        rules = self._rules
        text = transcript.lower() if isinstance(transcript, str) else ""
        number = caller_number if isinstance(caller_number, str) else ""

        total = 0.0
        reasons: list[str] = []

        # --- Known spam number ---
        if number and self._registry.is_known_spam(number):
            total += rules.known_number_weight
            reasons.append(REASON_KNOWN_NUMBER)

        # --- Spam keywords (one increment per keyword present) ---
        hits = _count_keyword_hits(text, rules.keywords)
        if hits > 0:
            total += rules.keyword_weight * hits
            reasons.append(_keyword_reason(hits))

        # --- Robocall phrasing ---
        if _has_robocall_pattern(text, rules.robocall_pairs):
            total += rules.robocall_weight
            reasons.append(REASON_ROBOCALL)

        # --- Urgency tactics ---
        if any(phrase in text for phrase in rules.urgency_phrases):
            total += rules.urgency_weight
            reasons.append(REASON_URGENCY)

        confidence = round(min(max(total, 0.0), 1.0), 4)
        verdict = SpamVerdict(
            is_spam=confidence > rules.threshold,
            confidence=confidence,
            reasons=tuple(reasons),
        )

        logger.info(
            "Spam score %.2f (spam=%s) — %s",
            verdict.confidence, verdict.is_spam, ", ".join(reasons) or "no signals",
        )
        return verdict


def _count_keyword_hits(text: str, keywords: tuple[str, ...]) -> int:
    if not text:
        return 0
    return sum(1 for keyword in keywords if keyword in text)


def _has_robocall_pattern(text: str, pairs: tuple[tuple[str, str], ...]) -> bool:
    if not text:
        return False
    return any(first in text and second in text for first, second in pairs)

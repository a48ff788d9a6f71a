"""
src/nlp/classifier.py
======================
Content Classifier — Voicemail Pipeline

Responsibility:
    - Derive sentiment, category and priority from transcript text and the
      spam verdict

Rules:
    - Sentiment: first bucket with a keyword hit wins, in configured order
      (urgent, negative, positive by default); neutral when none hit
    - Category: first bucket with a keyword hit wins; general when none hit
    - Priority: low for spam; else high on an urgent/critical keyword;
      else medium on an appointment/meeting/deadline keyword; else low
    - Matching is case-insensitive substring search

Buckets are data (ClassifierRules), so adding a keyword or a category
bucket never touches this module.

This module does NOT:
    - Call any LLM or external API
    - Compute spam scores (handled by src.risk.spam_scorer)
"""

import logging
from typing import Iterable, TypeVar

from src.config import ClassifierRules
from src.schemas.voicemail import Category, Classification, Priority, Sentiment

logger = logging.getLogger("voicemail.nlp.classifier")

L = TypeVar("L")


class ContentClassifier:
    """Keyword-bucket classifier for voicemail transcripts."""

    def __init__(self, rules: ClassifierRules | None = None):
        self._rules = rules or ClassifierRules()

    def classify(self, transcript: str | None, is_spam: bool) -> Classification:
        text = transcript.lower() if isinstance(transcript, str) else ""
        rules = self._rules

        sentiment = _first_match(text, rules.sentiment_buckets, Sentiment.NEUTRAL)
        category = _first_match(text, rules.category_buckets, Category.GENERAL)

        if is_spam:
            priority = Priority.LOW
        elif _contains_any(text, rules.high_priority_keywords):
            priority = Priority.HIGH
        elif _contains_any(text, rules.medium_priority_keywords):
            priority = Priority.MEDIUM
        else:
            priority = Priority.LOW

        result = Classification(sentiment=sentiment, category=category, priority=priority)
        logger.info(
            "Classified: sentiment=%s, category=%s, priority=%s",
            sentiment.value, category.value, priority.value,
        )
        return result

    def sentiment(self, transcript: str) -> Sentiment:
        return _first_match(transcript.lower(), self._rules.sentiment_buckets, Sentiment.NEUTRAL)

    def category(self, transcript: str) -> Category:
        return _first_match(transcript.lower(), self._rules.category_buckets, Category.GENERAL)


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return bool(text) and any(keyword in text for keyword in keywords)


def _first_match(text: str, buckets: Iterable[tuple[L, tuple[str, ...]]], default: L) -> L:
    for label, keywords in buckets:
        if _contains_any(text, keywords):
            return label
    return default

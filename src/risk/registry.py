"""
src/risk/registry.py
=====================
Spam-Number Registry — Voicemail Pipeline

Responsibility:
    - Answer "is this phone number a known spam source?"

The registry is owned outside the pipeline and refreshed out of band;
SpamScorer only reads it. Numbers are compared after stripping
formatting characters, so "+1 (555) 123-4567" matches "+15551234567".
"""

import re
import threading
from abc import ABC, abstractmethod
from typing import Iterable

_FORMATTING = re.compile(r"[\s().\-]")


def normalize_number(number: str | None) -> str:
    """Strip spaces, dots, dashes and parentheses from a phone number."""
    if not number:
        return ""
    return _FORMATTING.sub("", number.strip())


class SpamNumberRegistry(ABC):
    @abstractmethod
    def is_known_spam(self, number: str) -> bool:
        """Return True when ``number`` is registered as spam."""


class StaticSpamRegistry(SpamNumberRegistry):
    """In-memory registry seeded from configuration; ``replace`` swaps the set atomically."""

    def __init__(self, numbers: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._numbers = frozenset(normalize_number(n) for n in numbers if n)

    def is_known_spam(self, number: str) -> bool:
        normalized = normalize_number(number)
        if not normalized:
            return False
        with self._lock:
            return normalized in self._numbers

    def replace(self, numbers: Iterable[str]) -> None:
        fresh = frozenset(normalize_number(n) for n in numbers if n)
        with self._lock:
            self._numbers = fresh

    def __len__(self) -> int:
        with self._lock:
            return len(self._numbers)

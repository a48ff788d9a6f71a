"""
src/translation/usage.py
=========================
Per-provider usage counters — Voicemail Pipeline

Every attempted provider call is recorded, success or failure. Counters
are exposed for statistics and billing visibility; nothing here enforces
a limit.
"""

import threading
from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class ProviderUsage:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    characters: int = 0
    estimated_cost: float = 0.0


class UsageTracker:
    """Lock-protected map of provider name -> ProviderUsage."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._usage: dict[str, ProviderUsage] = {}

    def record(
        self,
        provider: str,
        characters: int,
        success: bool,
        cost_per_character: float = 0.0,
    ) -> None:
        with self._lock:
            usage = self._usage.setdefault(provider, ProviderUsage())
            usage.attempts += 1
            usage.characters += characters
            if success:
                usage.successes += 1
                usage.estimated_cost += characters * cost_per_character
            else:
                usage.failures += 1

    def get(self, provider: str) -> ProviderUsage:
        with self._lock:
            usage = self._usage.get(provider)
            return ProviderUsage(**asdict(usage)) if usage else ProviderUsage()

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {
                name: {**asdict(usage), "estimated_cost": round(usage.estimated_cost, 6)}
                for name, usage in sorted(self._usage.items())
            }

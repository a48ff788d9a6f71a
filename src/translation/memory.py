"""
src/translation/memory.py
==========================
Translation Memory — Voicemail Pipeline

Responsibility:
    - Store trusted translations keyed by (source language, target
      language, normalized source text)
    - Serve approved entries, bumping usage count and last-used time on
      every hit

Shared by every pipeline invocation in the process; all access goes
through one lock.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from src.schemas.languages import base_language

logger = logging.getLogger("voicemail.translation.memory")


@dataclass
class MemoryEntry:
    source_text: str
    translated_text: str
    source_language: str
    target_language: str
    created_at: datetime
    last_used: datetime
    usage_count: int = 1
    quality_score: float = 1.0
    approved: bool = True
    provider: str | None = None


MemoryKey = tuple[str, str, str]


def normalize_text(text: str) -> str:
    """Collapse whitespace and case so trivially different inputs share an entry."""
    return " ".join(text.split()).casefold()


def _key(text: str, source_language: str, target_language: str) -> MemoryKey:
    source = base_language(source_language) or "auto"
    return (source, base_language(target_language), normalize_text(text))


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TranslationMemory:
    """Thread-safe in-process translation memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[MemoryKey, MemoryEntry] = {}

    def lookup(self, text: str, source_language: str, target_language: str) -> MemoryEntry | None:
        """Return a snapshot of the approved entry for this text, or None."""
        key = _key(text, source_language, target_language)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.approved:
                return None
            entry.usage_count += 1
            entry.last_used = _now()
            return replace(entry)

    def save(
        self,
        text: str,
        translated_text: str,
        source_language: str,
        target_language: str,
        *,
        quality_score: float = 1.0,
        provider: str | None = None,
        approved: bool = True,
    ) -> MemoryEntry:
        """
        Store a translation. An existing entry keeps its text and only has
        its usage count and last-used time bumped.
        """
        key = _key(text, source_language, target_language)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                existing.usage_count += 1
                existing.last_used = _now()
                return replace(existing)

            now = _now()
            entry = MemoryEntry(
                source_text=text,
                translated_text=translated_text,
                source_language=key[0],
                target_language=key[1],
                created_at=now,
                last_used=now,
                quality_score=quality_score,
                approved=approved,
                provider=provider,
            )
            self._entries[key] = entry
            logger.debug("Memory entry stored (%s -> %s, %s).", key[0], key[1], provider)
            return replace(entry)

    def set_approved(self, text: str, source_language: str, target_language: str, approved: bool) -> bool:
        key = _key(text, source_language, target_language)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.approved = approved
            return True

    def entries(self) -> list[MemoryEntry]:
        with self._lock:
            return [replace(entry) for entry in self._entries.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

"""
src/schemas/voicemail.py
=========================
Voicemail Data Model — Voicemail Pipeline

Responsibility:
    - Define the immutable request (VoicemailInput)
    - Define the pipeline output record (ProcessedVoicemail)
    - Define translation results and the enum value sets used by every stage
    - Serialize records to plain JSON-safe dicts

Rules:
    - A record with status "completed" always carries a transcript
    - Optional values are None, never omitted, in serialized output
    - Stage results are only ever added to a record, never rewritten
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ProcessingStatus(str, Enum):
    """Lifecycle of a single pipeline invocation."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ProcessingStatus.COMPLETED,
            ProcessingStatus.FAILED,
            ProcessingStatus.CANCELLED,
        )


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    URGENT = "urgent"


class Category(str, Enum):
    APPOINTMENT = "appointment"
    DELIVERY = "delivery"
    BILLING = "billing"
    SUPPORT = "support"
    PERSONAL = "personal"
    BUSINESS = "business"
    GENERAL = "general"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SubscriptionTier(str, Enum):
    """User subscription level supplied by the user context."""

    FREE = "free"
    PREMIUM = "premium"
    BUSINESS = "business"


class QualityTier(str, Enum):
    """
    Translation quality/cost tier.

    Ordered from cheapest to most accurate. A request tier permits every
    provider whose own tier ranks at or below it.
    """

    FAST = "fast"
    STANDARD = "standard"
    HIGH = "high"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        return _QUALITY_RANK[self]

    def permits(self, other: "QualityTier") -> bool:
        return other.rank <= self.rank


_QUALITY_RANK: dict[QualityTier, int] = {
    QualityTier.FAST: 0,
    QualityTier.STANDARD: 1,
    QualityTier.HIGH: 2,
    QualityTier.PREMIUM: 3,
}


TRANSLATION_MEMORY_PROVIDER = "TranslationMemory"


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VoicemailInput:
    """
    One voicemail to process.

    Attributes:
        audio_ref:          Opaque audio handle / URI resolved by the audio store
        caller_number:      Caller phone number (E.164 preferred)
        caller_name:        Caller display name, if known
        duration_seconds:   Audio duration reported by the carrier
        preferred_language: User's preferred language (ISO 639-1)
        subscription_tier:  User's subscription level
    """

    audio_ref: str
    caller_number: str
    caller_name: str | None = None
    duration_seconds: float = 0.0
    preferred_language: str = "en"
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpamVerdict:
    is_spam: bool
    confidence: float
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class Classification:
    sentiment: Sentiment
    category: Category
    priority: Priority


@dataclass(frozen=True)
class TranscriptResult:
    """Recognized transcript with the confidence of every kept segment."""

    text: str
    segment_confidences: tuple[float, ...] = ()
    language_code: str | None = None
    used_long_running: bool = False


@dataclass
class TranslationResult:
    """Outcome of one translation request."""

    success: bool
    translated_text: str
    source_language: str
    confidence: float = 1.0
    provider: str | None = None
    processing_time: float = 0.0
    character_count: int = 0
    error_message: str | None = None
    provider_metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "translated_text": self.translated_text,
            "source_language": self.source_language,
            "confidence": round(self.confidence, 4),
            "provider": self.provider,
            "processing_time": round(self.processing_time, 4),
            "character_count": self.character_count,
            "error_message": self.error_message,
            "provider_metadata": dict(self.provider_metadata),
        }


@dataclass
class BatchTranslationResult:
    translations: list[TranslationResult]
    total_processing_time: float
    total_character_count: int
    provider_usage: dict[str, int]

    @property
    def success(self) -> bool:
        return any(t.success for t in self.translations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "translations": [t.to_dict() for t in self.translations],
            "total_processing_time": round(self.total_processing_time, 4),
            "total_character_count": self.total_character_count,
            "provider_usage": dict(self.provider_usage),
        }


# ---------------------------------------------------------------------------
# Output record
# ---------------------------------------------------------------------------


@dataclass
class ProcessedVoicemail:
    """Fully annotated voicemail produced by VoicemailPipeline.process."""

    caller_number: str
    audio_ref: str
    caller_name: str | None = None
    duration_seconds: float = 0.0
    transcript: str | None = None
    detected_language: str | None = None
    translated_text: str | None = None
    translation_provider: str | None = None
    translation_error: str | None = None
    is_spam: bool | None = None
    spam_confidence: float | None = None
    spam_reasons: list[str] = field(default_factory=list)
    sentiment: Sentiment | None = None
    category: Category | None = None
    priority: Priority | None = None
    summary: str | None = None
    status: ProcessingStatus = ProcessingStatus.PENDING
    error_message: str | None = None
    processed_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def from_input(cls, voicemail: VoicemailInput) -> "ProcessedVoicemail":
        return cls(
            caller_number=voicemail.caller_number,
            audio_ref=voicemail.audio_ref,
            caller_name=voicemail.caller_name,
            duration_seconds=voicemail.duration_seconds,
        )

    def apply_spam(self, verdict: SpamVerdict) -> None:
        self.is_spam = verdict.is_spam
        self.spam_confidence = verdict.confidence
        self.spam_reasons = list(verdict.reasons)

    def apply_classification(self, classification: Classification) -> None:
        self.sentiment = classification.sentiment
        self.category = classification.category
        self.priority = classification.priority

    def to_dict(self) -> dict[str, Any]:
        return {
            "caller_number": self.caller_number,
            "caller_name": self.caller_name,
            "audio_ref": self.audio_ref,
            "duration_seconds": self.duration_seconds,
            "transcript": self.transcript,
            "detected_language": self.detected_language,
            "translated_text": self.translated_text,
            "translation_provider": self.translation_provider,
            "translation_error": self.translation_error,
            "is_spam": self.is_spam,
            "spam_confidence": self.spam_confidence,
            "spam_reasons": list(self.spam_reasons),
            "sentiment": self.sentiment.value if self.sentiment else None,
            "category": self.category.value if self.category else None,
            "priority": self.priority.value if self.priority else None,
            "summary": self.summary,
            "processing_status": self.status.value,
            "error_message": self.error_message,
            "processed_at": self.processed_at.isoformat(),
        }

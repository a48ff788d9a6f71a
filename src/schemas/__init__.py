# src/schemas/__init__.py
# ========================
# Data Model — Voicemail Pipeline
#
# Responsibility:
#   - Request / output records shared by every stage
#   - Enum value sets (status, sentiment, category, priority, tiers)
#   - Language-code helpers (base code <-> recognition locale)

from src.schemas.voicemail import (  # noqa: F401
    BatchTranslationResult,
    Category,
    Classification,
    Priority,
    ProcessedVoicemail,
    ProcessingStatus,
    QualityTier,
    Sentiment,
    SpamVerdict,
    SubscriptionTier,
    TranscriptResult,
    TranslationResult,
    TRANSLATION_MEMORY_PROVIDER,
    VoicemailInput,
)
from src.schemas.languages import (  # noqa: F401
    base_language,
    language_name,
    same_language,
    to_locale,
)

"""
src/config.py
==============
Configuration — Voicemail Pipeline

Responsibility:
    - Load runtime settings from environment variables (.env supported)
    - Hold the keyword / weight tables used by the spam scorer and the
      content classifier as injectable data, not code
    - Hold per-provider translation settings (priority, languages, cost, tier)
    - Optionally override keyword tables from a JSON file
      (VOICEMAIL_KEYWORD_FILE) so deployments can update them without
      code changes

Environment variables (all optional):
    PROVIDER_TIMEOUT_SECONDS        per-call provider timeout (default 30)
    LONG_RUNNING_POLL_INTERVAL      poll interval for long-form STT (default 2)
    LONG_RUNNING_MAX_WAIT           max wait for long-form STT (default 300)
    SEGMENT_CONFIDENCE_THRESHOLD    transcript segment cut-off (default 0.7)
    SPAM_THRESHOLD                  spam verdict threshold (default 0.5)
    SUMMARY_MIN_LENGTH              transcript length that triggers summary (200)
    MAX_BATCH_SIZE                  translation batch cap (default 100)
    ENABLE_TRANSLATION_MEMORY       true | false (default true)
    MEMORY_MIN_QUALITY              fast | standard | high | premium (default high)
    DEFAULT_LANGUAGE                fallback language (default en)
    SPEECH_PROVIDER                 deepgram | whisper (default deepgram)
    WEBHOOK_URL                     POST target for processed voicemails
    OPENAI_API_KEY, DEEPGRAM_API_KEY, GOOGLE_TRANSLATE_API_KEY,
    DEEPL_API_KEY, MICROSOFT_TRANSLATOR_KEY, MICROSOFT_TRANSLATOR_REGION
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from src.schemas.voicemail import (
    Category,
    QualityTier,
    Sentiment,
    SubscriptionTier,
)

load_dotenv()

logger = logging.getLogger("voicemail.config")


# ---------------------------------------------------------------------------
# Spam scoring rules
# ---------------------------------------------------------------------------

DEFAULT_SPAM_NUMBERS: tuple[str, ...] = (
    "+15551234567",
    "+18005551234",
    "+12345678900",
)

DEFAULT_SPAM_KEYWORDS: tuple[str, ...] = (
    "congratulations", "winner", "prize", "lottery", "free", "offer",
    "limited time", "act now", "warranty", "extended warranty",
    "credit", "loan", "debt", "foreclosure", "refinance",
    "medicare", "insurance", "social security", "irs", "tax",
)

# Each pair triggers the robocall signal when BOTH words appear
DEFAULT_ROBOCALL_PAIRS: tuple[tuple[str, str], ...] = (
    ("press", "number"),
    ("dial", "extension"),
)

DEFAULT_URGENCY_PHRASES: tuple[str, ...] = (
    "urgent",
    "expires today",
    "last chance",
)


@dataclass(frozen=True)
class SpamRules:
    """Static configuration consumed by SpamScorer."""

    known_spam_numbers: tuple[str, ...] = DEFAULT_SPAM_NUMBERS
    keywords: tuple[str, ...] = DEFAULT_SPAM_KEYWORDS
    robocall_pairs: tuple[tuple[str, str], ...] = DEFAULT_ROBOCALL_PAIRS
    urgency_phrases: tuple[str, ...] = DEFAULT_URGENCY_PHRASES
    known_number_weight: float = 0.8
    keyword_weight: float = 0.15
    robocall_weight: float = 0.3
    urgency_weight: float = 0.2
    threshold: float = 0.5


# ---------------------------------------------------------------------------
# Content classification rules
# ---------------------------------------------------------------------------

# Checked in order; the first bucket with a hit wins
DEFAULT_SENTIMENT_BUCKETS: tuple[tuple[Sentiment, tuple[str, ...]], ...] = (
    (Sentiment.URGENT, ("urgent", "emergency", "asap", "immediately", "important")),
    (Sentiment.NEGATIVE, (
        "angry", "upset", "terrible", "horrible", "hate", "complaint", "problem",
    )),
    (Sentiment.POSITIVE, ("thank", "great", "wonderful", "excellent", "happy", "please")),
)

DEFAULT_CATEGORY_BUCKETS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.APPOINTMENT, ("appointment", "schedule", "meeting")),
    (Category.DELIVERY, ("delivery", "package", "shipping")),
    (Category.BILLING, ("payment", "bill", "invoice")),
    (Category.SUPPORT, ("support", "help", "technical")),
    (Category.PERSONAL, ("family", "personal", "friend")),
    (Category.BUSINESS, ("business", "work", "office")),
)

DEFAULT_HIGH_PRIORITY_KEYWORDS: tuple[str, ...] = (
    "urgent", "emergency", "asap", "immediately", "important", "critical",
)

DEFAULT_MEDIUM_PRIORITY_KEYWORDS: tuple[str, ...] = (
    "appointment", "meeting", "deadline",
)


@dataclass(frozen=True)
class ClassifierRules:
    """Keyword buckets consumed by ContentClassifier."""

    sentiment_buckets: tuple[tuple[Sentiment, tuple[str, ...]], ...] = DEFAULT_SENTIMENT_BUCKETS
    category_buckets: tuple[tuple[Category, tuple[str, ...]], ...] = DEFAULT_CATEGORY_BUCKETS
    high_priority_keywords: tuple[str, ...] = DEFAULT_HIGH_PRIORITY_KEYWORDS
    medium_priority_keywords: tuple[str, ...] = DEFAULT_MEDIUM_PRIORITY_KEYWORDS


# ---------------------------------------------------------------------------
# Language identification rules
# ---------------------------------------------------------------------------

DEFAULT_DETECTION_PRIMARY: str = "en-US"

# Candidate languages tried next to the primary during detection
DEFAULT_DETECTION_ALTERNATES: tuple[str, ...] = ("es-ES", "fr-FR", "de-DE", "it-IT")

# Regional variants passed as alternates when transcribing a primary locale
DEFAULT_ALTERNATE_LANGUAGES: dict[str, tuple[str, ...]] = {
    "en-US": ("en-GB", "en-AU"),
    "es-ES": ("es-MX", "es-AR"),
    "fr-FR": ("fr-CA",),
}


@dataclass(frozen=True)
class LanguageRules:
    """
    Alternate-language tables used for detection and transcription hints.

    ``detection_alternates_by_primary`` lets a deployment whose users mostly
    speak e.g. Spanish probe a different candidate set than the default.
    """

    detection_primary: str = DEFAULT_DETECTION_PRIMARY
    detection_alternates: tuple[str, ...] = DEFAULT_DETECTION_ALTERNATES
    detection_alternates_by_primary: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    alternates_by_primary: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_ALTERNATE_LANGUAGES)
    )

    def alternates_for(self, primary: str) -> tuple[str, ...]:
        return tuple(self.alternates_by_primary.get(primary, ()))

    def detection_alternates_for(self, primary: str) -> tuple[str, ...]:
        alternates = self.detection_alternates_by_primary.get(primary, self.detection_alternates)
        return tuple(code for code in alternates if code != primary)


# ---------------------------------------------------------------------------
# Translation provider settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderConfig:
    """
    Per-provider translation settings.

    Attributes:
        name:                 Provider identifier used in logs and statistics
        enabled:              Disabled providers are never attempted
        priority:             Lower is tried first
        supported_languages:  Base codes the provider accepts; empty = any
        requests_per_minute:  Advertised rate limit (exposed, not enforced)
        cost_per_character:   Used for usage / billing statistics
        quality_tier:         Tier of this provider's output
    """

    name: str
    enabled: bool = True
    priority: int = 1
    supported_languages: frozenset[str] = frozenset()
    requests_per_minute: int = 1000
    cost_per_character: float = 0.0
    quality_tier: QualityTier = QualityTier.STANDARD
    api_key: str = ""
    endpoint: str | None = None
    region: str | None = None

    def supports(self, source_language: str, target_language: str) -> bool:
        if not self.supported_languages:
            return True
        # An unknown ("auto") source is left to the provider to detect
        source_ok = source_language in ("", "auto") or source_language in self.supported_languages
        return source_ok and target_language in self.supported_languages


DEEPL_LANGUAGES: frozenset[str] = frozenset({
    "en", "de", "fr", "it", "ja", "es", "nl", "pl", "pt", "ru", "zh", "bg",
    "cs", "da", "et", "fi", "el", "hu", "lv", "lt", "ro", "sk", "sl", "sv", "tr",
})


# Subscription tier -> highest translation quality tier it may use.
# None means the tier does not include translation.
DEFAULT_TRANSLATION_TIERS: dict[SubscriptionTier, QualityTier | None] = {
    SubscriptionTier.FREE: None,
    SubscriptionTier.PREMIUM: QualityTier.HIGH,
    SubscriptionTier.BUSINESS: QualityTier.PREMIUM,
}


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """Root runtime configuration."""

    provider_timeout_seconds: float = 30.0
    long_running_poll_interval: float = 2.0
    long_running_max_wait: float = 300.0
    segment_confidence_threshold: float = 0.7
    summary_min_length: int = 200
    max_batch_size: int = 100
    translation_memory_enabled: bool = True
    memory_min_quality: QualityTier = QualityTier.HIGH
    default_language: str = "en"
    speech_provider: str = "deepgram"
    webhook_url: str | None = None
    openai_api_key: str = ""
    deepgram_api_key: str = ""
    spam: SpamRules = field(default_factory=SpamRules)
    classifier: ClassifierRules = field(default_factory=ClassifierRules)
    languages: LanguageRules = field(default_factory=LanguageRules)
    providers: tuple[ProviderConfig, ...] = ()
    translation_tiers: Mapping[SubscriptionTier, QualityTier | None] = field(
        default_factory=lambda: dict(DEFAULT_TRANSLATION_TIERS)
    )

    def quality_for(self, tier: SubscriptionTier) -> QualityTier | None:
        return self.translation_tiers.get(tier)


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r — using %s.", name, raw, default)
        return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    return int(_env_float(env, name, float(default)))


def build_provider_configs(env: Mapping[str, str]) -> tuple[ProviderConfig, ...]:
    """Default provider chain; a provider without an API key is disabled."""
    google_key = env.get("GOOGLE_TRANSLATE_API_KEY", "")
    deepl_key = env.get("DEEPL_API_KEY", "")
    microsoft_key = env.get("MICROSOFT_TRANSLATOR_KEY", "")
    openai_key = env.get("OPENAI_API_KEY", "")

    return (
        ProviderConfig(
            name="GoogleTranslate",
            enabled=bool(google_key),
            priority=1,
            cost_per_character=0.00002,
            quality_tier=QualityTier.STANDARD,
            api_key=google_key,
        ),
        ProviderConfig(
            name="DeepL",
            enabled=bool(deepl_key),
            priority=2,
            supported_languages=DEEPL_LANGUAGES,
            cost_per_character=0.000025,
            quality_tier=QualityTier.HIGH,
            api_key=deepl_key,
            endpoint=env.get("DEEPL_API_URL") or None,
        ),
        ProviderConfig(
            name="MicrosoftTranslator",
            enabled=bool(microsoft_key),
            priority=3,
            cost_per_character=0.00001,
            quality_tier=QualityTier.STANDARD,
            api_key=microsoft_key,
            region=env.get("MICROSOFT_TRANSLATOR_REGION") or None,
        ),
        ProviderConfig(
            name="OpenAI",
            enabled=bool(openai_key),
            priority=4,
            requests_per_minute=500,
            cost_per_character=0.000005,
            quality_tier=QualityTier.PREMIUM,
            api_key=openai_key,
        ),
    )


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables (defaults documented above)."""
    env = os.environ if env is None else env

    memory_quality_raw = env.get("MEMORY_MIN_QUALITY", QualityTier.HIGH.value).strip().lower()
    try:
        memory_min_quality = QualityTier(memory_quality_raw)
    except ValueError:
        logger.warning(
            "Ignoring invalid MEMORY_MIN_QUALITY=%r — using 'high'.", memory_quality_raw,
        )
        memory_min_quality = QualityTier.HIGH

    settings = Settings(
        provider_timeout_seconds=_env_float(env, "PROVIDER_TIMEOUT_SECONDS", 30.0),
        long_running_poll_interval=_env_float(env, "LONG_RUNNING_POLL_INTERVAL", 2.0),
        long_running_max_wait=_env_float(env, "LONG_RUNNING_MAX_WAIT", 300.0),
        segment_confidence_threshold=_env_float(env, "SEGMENT_CONFIDENCE_THRESHOLD", 0.7),
        summary_min_length=_env_int(env, "SUMMARY_MIN_LENGTH", 200),
        max_batch_size=_env_int(env, "MAX_BATCH_SIZE", 100),
        translation_memory_enabled=_env_bool(env, "ENABLE_TRANSLATION_MEMORY", True),
        memory_min_quality=memory_min_quality,
        default_language=env.get("DEFAULT_LANGUAGE", "en").strip().lower() or "en",
        speech_provider=env.get("SPEECH_PROVIDER", "deepgram").strip().lower(),
        webhook_url=env.get("WEBHOOK_URL") or None,
        openai_api_key=env.get("OPENAI_API_KEY", ""),
        deepgram_api_key=env.get("DEEPGRAM_API_KEY", ""),
        providers=build_provider_configs(env),
    )

    # Spam threshold is a top-level knob; keep it next to the weights
    spam_threshold = _env_float(env, "SPAM_THRESHOLD", settings.spam.threshold)
    settings = replace(settings, spam=replace(settings.spam, threshold=spam_threshold))

    keyword_file = env.get("VOICEMAIL_KEYWORD_FILE")
    if keyword_file:
        settings = apply_rules_file(settings, Path(keyword_file))

    return settings


# ---------------------------------------------------------------------------
# JSON rule overrides
# ---------------------------------------------------------------------------


def apply_rules_file(settings: Settings, path: Path) -> Settings:
    """
    Override keyword tables from a JSON document.

    Recognized top-level keys (all optional):
        "spam":       {"known_spam_numbers": [...], "keywords": [...],
                       "robocall_pairs": [[a, b], ...], "urgency_phrases": [...],
                       "weights": {"known_number": f, "keyword": f,
                                   "robocall": f, "urgency": f},
                       "threshold": f}
        "classifier": {"sentiment": {"urgent": [...], ...},   # ordered
                       "categories": {"appointment": [...], ...},  # ordered
                       "high_priority": [...], "medium_priority": [...]}
        "languages":  {"detection_primary": "en-US",
                       "detection_alternates": [...],
                       "detection_alternates_by_primary": {"es-MX": [...], ...},
                       "alternates": {"en-US": [...], ...}}

    Raises:
        ValueError: If the file is not valid JSON or holds unknown labels.
    """
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot load keyword file {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise ValueError(f"Keyword file {path} must hold a JSON object")

    spam = _spam_rules_from(document.get("spam") or {}, settings.spam)
    classifier = _classifier_rules_from(document.get("classifier") or {}, settings.classifier)
    languages = _language_rules_from(document.get("languages") or {}, settings.languages)

    logger.info("Keyword tables loaded from %s.", path)
    return replace(settings, spam=spam, classifier=classifier, languages=languages)


def _spam_rules_from(data: dict[str, Any], base: SpamRules) -> SpamRules:
    weights = data.get("weights") or {}
    return SpamRules(
        known_spam_numbers=tuple(data.get("known_spam_numbers", base.known_spam_numbers)),
        keywords=tuple(k.lower() for k in data.get("keywords", base.keywords)),
        robocall_pairs=tuple(
            (a.lower(), b.lower()) for a, b in data.get("robocall_pairs", base.robocall_pairs)
        ),
        urgency_phrases=tuple(p.lower() for p in data.get("urgency_phrases", base.urgency_phrases)),
        known_number_weight=float(weights.get("known_number", base.known_number_weight)),
        keyword_weight=float(weights.get("keyword", base.keyword_weight)),
        robocall_weight=float(weights.get("robocall", base.robocall_weight)),
        urgency_weight=float(weights.get("urgency", base.urgency_weight)),
        threshold=float(data.get("threshold", base.threshold)),
    )


def _classifier_rules_from(data: dict[str, Any], base: ClassifierRules) -> ClassifierRules:
    sentiment_buckets = base.sentiment_buckets
    if "sentiment" in data:
        sentiment_buckets = tuple(
            (Sentiment(label), tuple(k.lower() for k in keywords))
            for label, keywords in data["sentiment"].items()
        )

    category_buckets = base.category_buckets
    if "categories" in data:
        category_buckets = tuple(
            (Category(label), tuple(k.lower() for k in keywords))
            for label, keywords in data["categories"].items()
        )

    return ClassifierRules(
        sentiment_buckets=sentiment_buckets,
        category_buckets=category_buckets,
        high_priority_keywords=tuple(
            k.lower() for k in data.get("high_priority", base.high_priority_keywords)
        ),
        medium_priority_keywords=tuple(
            k.lower() for k in data.get("medium_priority", base.medium_priority_keywords)
        ),
    )


def _language_rules_from(data: dict[str, Any], base: LanguageRules) -> LanguageRules:
    alternates = dict(base.alternates_by_primary)
    for primary, codes in (data.get("alternates") or {}).items():
        alternates[primary] = tuple(codes)

    detection_by_primary = dict(base.detection_alternates_by_primary)
    for primary, codes in (data.get("detection_alternates_by_primary") or {}).items():
        detection_by_primary[primary] = tuple(codes)

    return LanguageRules(
        detection_primary=data.get("detection_primary", base.detection_primary),
        detection_alternates=tuple(data.get("detection_alternates", base.detection_alternates)),
        detection_alternates_by_primary=detection_by_primary,
        alternates_by_primary=alternates,
    )

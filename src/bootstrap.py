"""
src/bootstrap.py
=================
Pipeline wiring — Voicemail Pipeline

Builds a fully wired VoicemailPipeline from Settings. Every collaborator
can be passed in explicitly (tests pass stubs); anything omitted is built
from configuration.
"""

import logging
from typing import Sequence

from src.audio.store import AudioStore, RoutingAudioStore
from src.config import Settings, load_settings
from src.nlp.classifier import ContentClassifier
from src.nlp.summarizer import Summarizer
from src.pipeline import VoicemailPipeline
from src.risk.registry import SpamNumberRegistry, StaticSpamRegistry
from src.risk.spam_scorer import SpamScorer
from src.stt.deepgram_client import DeepgramSpeechProvider
from src.stt.language_detector import LanguageIdentifier
from src.stt.providers import SpeechProvider
from src.stt.transcriber import Transcriber
from src.stt.whisper_client import WhisperSpeechProvider
from src.translation.backends import TranslationBackend, build_backends
from src.translation.orchestrator import TranslationOrchestrator

logger = logging.getLogger("voicemail.bootstrap")


def build_speech_provider(settings: Settings) -> SpeechProvider:
    """Deepgram unless SPEECH_PROVIDER=whisper."""
    if settings.speech_provider == "whisper":
        return WhisperSpeechProvider(api_key=settings.openai_api_key)
    if settings.speech_provider != "deepgram":
        logger.warning(
            "Unknown SPEECH_PROVIDER=%r — using deepgram.", settings.speech_provider,
        )
    return DeepgramSpeechProvider(api_key=settings.deepgram_api_key)


def build_translator(
    settings: Settings,
    backends: Sequence[TranslationBackend] | None = None,
) -> TranslationOrchestrator:
    if backends is None:
        backends = build_backends(settings.providers)
    return TranslationOrchestrator(
        backends,
        timeout=settings.provider_timeout_seconds,
        max_batch_size=settings.max_batch_size,
        memory_enabled=settings.translation_memory_enabled,
        memory_min_quality=settings.memory_min_quality,
    )


def build_pipeline(
    settings: Settings | None = None,
    *,
    audio_store: AudioStore | None = None,
    speech_provider: SpeechProvider | None = None,
    backends: Sequence[TranslationBackend] | None = None,
    spam_registry: SpamNumberRegistry | None = None,
) -> VoicemailPipeline:
    settings = settings or load_settings()
    audio_store = audio_store or RoutingAudioStore()
    speech_provider = speech_provider or build_speech_provider(settings)
    translator = build_translator(settings, backends)

    identifier = LanguageIdentifier(
        speech_provider,
        settings.languages,
        timeout=settings.provider_timeout_seconds,
        text_detectors=translator.detectors,
    )
    transcriber = Transcriber(
        speech_provider,
        audio_store,
        confidence_threshold=settings.segment_confidence_threshold,
        timeout=settings.provider_timeout_seconds,
        poll_interval=settings.long_running_poll_interval,
        max_wait=settings.long_running_max_wait,
    )
    registry = spam_registry or StaticSpamRegistry(settings.spam.known_spam_numbers)

    logger.info(
        "Pipeline built: speech=%s, translation chain=%s.",
        speech_provider.name, translator.statistics()["provider_chain"],
    )
    return VoicemailPipeline(
        settings=settings,
        audio_store=audio_store,
        identifier=identifier,
        transcriber=transcriber,
        spam_scorer=SpamScorer(settings.spam, registry),
        classifier=ContentClassifier(settings.classifier),
        summarizer=Summarizer(),
        translator=translator,
    )

"""
src/translation/orchestrator.py
================================
Translation Orchestrator — Voicemail Pipeline

Responsibility:
    - Translate text through an ordered failover chain of backends
    - Serve and feed the translation memory
    - Record every provider attempt in the usage counters
    - Batch translation with a hard size cap

Algorithm (translate):
    1. Empty text -> successful no-op
    2. Unknown source -> detect it through a backend that can
    3. Source == target -> text returned as-is, no provider call
    4. Translation memory hit -> returned with provider TranslationMemory
    5. Backends in ascending priority (preferred provider first), skipping
       disabled ones, ones that do not support the language pair and ones
       above the requested quality tier; each call under a timeout
    6. A failure (timeout, rate limit, provider error) is logged and the
       next backend is tried; when none is left AllProvidersExhaustedError
       carries every failure

This module does NOT:
    - Decide whether a voicemail needs translation (handled by the pipeline)
    - Enforce provider rate limits (counters are for visibility only)
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence

from src.concurrency import CancellationToken, call_with_timeout
from src.exceptions import (
    AllProvidersExhaustedError,
    BatchSizeExceededError,
    CancelledError,
    ProviderError,
    ProviderFailure,
    VoicemailProcessingError,
)
from src.schemas.languages import base_language, same_language
from src.schemas.voicemail import (
    TRANSLATION_MEMORY_PROVIDER,
    BatchTranslationResult,
    QualityTier,
    TranslationResult,
)
from src.translation.backends import TranslationBackend
from src.translation.memory import TranslationMemory
from src.translation.usage import UsageTracker

logger = logging.getLogger("voicemail.translation.orchestrator")

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_BATCH_WORKERS = 4


class TranslationOrchestrator:
    """Failover translation across pluggable backends."""

    def __init__(
        self,
        backends: Sequence[TranslationBackend],
        *,
        memory: TranslationMemory | None = None,
        usage: UsageTracker | None = None,
        timeout: float = 30.0,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        memory_enabled: bool = True,
        memory_min_quality: QualityTier = QualityTier.HIGH,
        batch_workers: int = DEFAULT_BATCH_WORKERS,
    ):
        self._backends = sorted(backends, key=lambda b: b.config.priority)
        self._memory = memory if memory is not None else TranslationMemory()
        self._usage = usage if usage is not None else UsageTracker()
        self._timeout = timeout
        self._max_batch_size = max_batch_size
        self._memory_enabled = memory_enabled
        self._memory_min_quality = memory_min_quality
        self._batch_workers = batch_workers

    @property
    def memory(self) -> TranslationMemory:
        return self._memory

    @property
    def usage(self) -> UsageTracker:
        return self._usage

    # ------------------------------------------------------------------
    # Single translation
    # ------------------------------------------------------------------

    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        quality_tier: QualityTier = QualityTier.PREMIUM,
        *,
        preferred_provider: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TranslationResult:
        """
        Translate ``text`` into ``target_language``.

        Args:
            text:               Text to translate.
            source_language:    Source code, or "auto" / "" to detect.
            target_language:    Target code.
            quality_tier:       Highest provider tier this request may use.
            preferred_provider: Provider name moved to the front of the chain.
            cancel_token:       Optional cancellation token.

        Returns:
            Successful TranslationResult.

        Raises:
            AllProvidersExhaustedError: No eligible backend succeeded.
            CancelledError:             The token was cancelled.
        """
        started = time.monotonic()

        if not text or not text.strip():
            return TranslationResult(
                success=True,
                translated_text=text or "",
                source_language=source_language or "auto",
                character_count=0,
            )

        source = source_language or "auto"
        if source == "auto":
            detected = self.detect_language(text, cancel_token=cancel_token)
            if detected:
                source = detected

        if same_language(source, target_language):
            logger.info("Source and target are both %s — no translation needed.", source)
            return TranslationResult(
                success=True,
                translated_text=text,
                source_language=source,
                processing_time=time.monotonic() - started,
                character_count=len(text),
            )

        if self._memory_enabled:
            entry = self._memory.lookup(text, source, target_language)
            if entry is not None:
                logger.info(
                    "Translation served from memory (%s -> %s, used %d times).",
                    source, target_language, entry.usage_count,
                )
                return TranslationResult(
                    success=True,
                    translated_text=entry.translated_text,
                    source_language=source,
                    confidence=entry.quality_score,
                    provider=TRANSLATION_MEMORY_PROVIDER,
                    processing_time=time.monotonic() - started,
                    character_count=len(text),
                    provider_metadata={
                        "usage_count": entry.usage_count,
                        "original_provider": entry.provider,
                    },
                )

        chain = self.provider_chain(source, target_language, quality_tier, preferred_provider)
        failures: list[ProviderFailure] = []

        for backend in chain:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            logger.info("Attempting translation with %s (%s -> %s).", backend.name, source, target_language)
            try:
                output = call_with_timeout(
                    lambda backend=backend: backend.translate(text, source, target_language),
                    timeout=self._timeout,
                    provider=backend.name,
                    cancel_token=cancel_token,
                )
            except CancelledError:
                self._usage.record(backend.name, len(text), success=False)
                raise
            except ProviderError as exc:
                self._usage.record(backend.name, len(text), success=False)
                failures.append(ProviderFailure(backend.name, exc.message))
                logger.warning("Translation failed with %s: %s", backend.name, exc.message)
                continue
            except Exception as exc:
                self._usage.record(backend.name, len(text), success=False)
                failures.append(ProviderFailure(backend.name, f"{type(exc).__name__}: {exc}"))
                logger.warning(
                    "Translation failed with %s (unexpected %s): %s",
                    backend.name, type(exc).__name__, exc, exc_info=True,
                )
                continue

            self._usage.record(
                backend.name, len(text), success=True,
                cost_per_character=backend.config.cost_per_character,
            )

            detected_source = base_language(output.detected_source) or source
            if self._memory_enabled and backend.config.quality_tier.rank >= self._memory_min_quality.rank:
                self._memory.save(
                    text, output.text, source, target_language,
                    quality_score=output.confidence if output.confidence is not None else 1.0,
                    provider=backend.name,
                )

            metadata: dict[str, Any] = dict(output.metadata)
            metadata["failures"] = [{"provider": f.provider, "reason": f.reason} for f in failures]

            logger.info("Translation successful with %s.", backend.name)
            return TranslationResult(
                success=True,
                translated_text=output.text,
                source_language=detected_source,
                confidence=output.confidence if output.confidence is not None else 1.0,
                provider=backend.name,
                processing_time=time.monotonic() - started,
                character_count=len(text),
                provider_metadata=metadata,
            )

        logger.error(
            "All translation providers failed (%s -> %s): %d failure(s).",
            source, target_language, len(failures),
        )
        raise AllProvidersExhaustedError(failures)

    def provider_chain(
        self,
        source_language: str,
        target_language: str,
        quality_tier: QualityTier = QualityTier.PREMIUM,
        preferred_provider: str | None = None,
    ) -> list[TranslationBackend]:
        """Eligible backends in the order they will be tried."""
        source = base_language(source_language) or "auto"
        target = base_language(target_language)

        chain: list[TranslationBackend] = []
        for backend in self._backends:
            config = backend.config
            if not config.enabled:
                continue
            if not config.supports(source, target):
                logger.debug("%s skipped: %s -> %s not supported.", backend.name, source, target)
                continue
            if not quality_tier.permits(config.quality_tier):
                logger.debug(
                    "%s skipped: tier %s above requested %s.",
                    backend.name, config.quality_tier.value, quality_tier.value,
                )
                continue
            chain.append(backend)

        if preferred_provider:
            preferred = [b for b in chain if b.name == preferred_provider]
            chain = preferred + [b for b in chain if b.name != preferred_provider]
        return chain

    # ------------------------------------------------------------------
    # Batch translation
    # ------------------------------------------------------------------

    def translate_batch(
        self,
        texts: Sequence[str],
        target_language: str,
        source_language: str = "auto",
        quality_tier: QualityTier = QualityTier.PREMIUM,
        *,
        preferred_provider: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> BatchTranslationResult:
        """
        Translate many texts concurrently.

        The whole request is rejected when it is over the size cap; a
        failing item yields an unsuccessful TranslationResult, not an error.

        Raises:
            BatchSizeExceededError: More than ``max_batch_size`` texts.
            CancelledError:         The token was cancelled.
        """
        if len(texts) > self._max_batch_size:
            raise BatchSizeExceededError(len(texts), self._max_batch_size)

        started = time.monotonic()

        def _translate_one(text: str) -> TranslationResult:
            try:
                return self.translate(
                    text, source_language, target_language, quality_tier,
                    preferred_provider=preferred_provider, cancel_token=cancel_token,
                )
            except CancelledError:
                raise
            except VoicemailProcessingError as exc:
                return TranslationResult(
                    success=False,
                    translated_text="",
                    source_language=source_language,
                    confidence=0.0,
                    character_count=len(text or ""),
                    error_message=str(exc),
                )

        if texts:
            workers = max(1, min(self._batch_workers, len(texts)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="translate") as executor:
                translations = list(executor.map(_translate_one, texts))
        else:
            translations = []

        provider_usage: dict[str, int] = {}
        for result in translations:
            if result.success and result.provider:
                provider_usage[result.provider] = provider_usage.get(result.provider, 0) + 1

        batch = BatchTranslationResult(
            translations=translations,
            total_processing_time=time.monotonic() - started,
            total_character_count=sum(t.character_count for t in translations),
            provider_usage=provider_usage,
        )
        logger.info(
            "Batch translation: %d/%d succeeded.",
            sum(1 for t in translations if t.success), len(translations),
        )
        return batch

    # ------------------------------------------------------------------
    # Detection & statistics
    # ------------------------------------------------------------------

    def detect_language(
        self, text: str, cancel_token: CancellationToken | None = None,
    ) -> str | None:
        """Base code of ``text``'s language from the first backend that can tell."""
        for backend in self.detectors:
            try:
                detected = call_with_timeout(
                    lambda backend=backend: backend.detect(text),
                    timeout=self._timeout,
                    provider=backend.name,
                    cancel_token=cancel_token,
                )
            except CancelledError:
                raise
            except ProviderError as exc:
                logger.warning("Language detection failed with %s: %s", backend.name, exc.message)
                continue
            except Exception as exc:
                logger.warning(
                    "Language detection failed with %s (unexpected %s): %s",
                    backend.name, type(exc).__name__, exc, exc_info=True,
                )
                continue
            if detected:
                return base_language(detected[0])
        return None

    @property
    def detectors(self) -> list[TranslationBackend]:
        """Enabled backends that override the detection capability."""
        return [
            b for b in self._backends
            if b.config.enabled and type(b).detect is not TranslationBackend.detect
        ]

    def statistics(self) -> dict[str, Any]:
        return {
            "providers": self._usage.snapshot(),
            "provider_chain": [b.name for b in self._backends if b.config.enabled],
            "translation_memory": {
                "enabled": self._memory_enabled,
                "entries": len(self._memory),
            },
        }

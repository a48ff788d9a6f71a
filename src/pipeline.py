"""
src/pipeline.py
================
Voicemail Pipeline Orchestrator — Voicemail Pipeline

Responsibility:
    1. Sequence the stages for one voicemail and gate each on the
       previous stage's success
    2. Apply policy: translation only when languages differ and the
       subscription permits it; summary only for long transcripts
    3. Verify every stage output before it lands on the record
    4. Assemble and return the ProcessedVoicemail

Stage order:
    Stage 1: Audio + Language Detection  -> detected locale (non-fatal)
    Stage 2: Transcription               -> transcript (FATAL on failure)
    Stage 3: Spam Scoring + Classification
    Stage 4: Translation                 (non-fatal, conditional)
    Stage 5: Summarization               (conditional)

Stages 3-5 depend only on the transcript and run concurrently.

Statuses:
    pending -> processing -> completed | failed | cancelled

    A failed record carries no transcript or analysis, including when a
    later verification check (not transcription) is what failed.

This layer MUST NOT:
    - Retry a failed stage within one invocation
    - Perform recognition, scoring or translation itself
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from src.audio.store import AudioClip, AudioStore
from src.concurrency import CancellationToken
from src.config import Settings
from src.exceptions import (
    AudioUnavailableError,
    CancelledError,
    StageVerificationError,
    TranscriptionError,
    VoicemailProcessingError,
)
from src.nlp.classifier import ContentClassifier
from src.nlp.summarizer import Summarizer
from src.risk.spam_scorer import SpamScorer
from src.schemas.languages import base_language, same_language, to_locale
from src.schemas.voicemail import (
    Classification,
    ProcessedVoicemail,
    ProcessingStatus,
    SpamVerdict,
    TranslationResult,
    VoicemailInput,
)
from src.stage_validator import (
    verify_classification,
    verify_record,
    verify_spam,
    verify_transcript,
    verify_translation,
)
from src.stt.language_detector import LanguageIdentifier
from src.stt.transcriber import Transcriber
from src.translation.orchestrator import TranslationOrchestrator

logger = logging.getLogger("voicemail.pipeline")

ANALYSIS_WORKERS = 3


def _banner(title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


class VoicemailPipeline:
    """Coordinates every stage for one voicemail per ``process`` call."""

    def __init__(
        self,
        *,
        settings: Settings,
        audio_store: AudioStore,
        identifier: LanguageIdentifier,
        transcriber: Transcriber,
        spam_scorer: SpamScorer,
        classifier: ContentClassifier,
        summarizer: Summarizer,
        translator: TranslationOrchestrator,
    ):
        self._settings = settings
        self._store = audio_store
        self._identifier = identifier
        self._transcriber = transcriber
        self._spam_scorer = spam_scorer
        self._classifier = classifier
        self._summarizer = summarizer
        self._translator = translator

    @property
    def translator(self) -> TranslationOrchestrator:
        return self._translator

    def process(
        self,
        voicemail: VoicemailInput,
        cancel_token: CancellationToken | None = None,
    ) -> ProcessedVoicemail:
        """
        Run the full pipeline for one voicemail.

        Never raises for stage failures: a failed transcription yields a
        ``failed`` record, a cancellation a ``cancelled`` record.
        """
        token = cancel_token or CancellationToken()
        record = ProcessedVoicemail.from_input(voicemail)
        record.status = ProcessingStatus.PROCESSING
        logger.info("Processing voicemail %s from %s.", voicemail.audio_ref, voicemail.caller_number)

        try:
            self._run(voicemail, record, token)
        except CancelledError as exc:
            logger.warning("Voicemail %s cancelled.", voicemail.audio_ref)
            record.status = ProcessingStatus.CANCELLED
            record.error_message = str(exc)

        record.processed_at = datetime.now(timezone.utc)
        return record

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(
        self,
        voicemail: VoicemailInput,
        record: ProcessedVoicemail,
        token: CancellationToken,
    ) -> None:
        preferred = voicemail.preferred_language or self._settings.default_language

        # ==================================================================
        # STAGE 1: Audio + Language Detection (non-fatal)
        # ==================================================================
        _banner("STAGE 1: Language Detection")
        try:
            audio = self._store.fetch(voicemail.audio_ref)
        except AudioUnavailableError as exc:
            self._fail(record, TranscriptionError(voicemail.audio_ref, exc.message, cause=exc))
            return

        locale = self._detect_language(audio, preferred, token)

        # ==================================================================
        # STAGE 2: Transcription (FATAL on failure)
        # ==================================================================
        _banner("STAGE 2: Transcription")
        token.raise_if_cancelled()
        try:
            transcript = self._transcriber.transcribe(
                voicemail.audio_ref,
                locale,
                self._settings.languages.alternates_for(locale),
                audio=audio,
                cancel_token=token,
            )
            verify_transcript(transcript)
        except (TranscriptionError, StageVerificationError) as exc:
            self._fail(record, exc)
            return

        record.transcript = transcript.text
        record.detected_language = base_language(transcript.language_code or locale)
        logger.info(
            "Stage 2 complete: %d chars, language=%s.",
            len(transcript.text), record.detected_language,
        )

        # ==================================================================
        # STAGES 3-5: Analysis (concurrent)
        # ==================================================================
        _banner("STAGES 3-5: Spam, Classification, Translation, Summary")
        text = transcript.text
        with ThreadPoolExecutor(max_workers=ANALYSIS_WORKERS, thread_name_prefix="analysis") as executor:
            scoring = executor.submit(self._score_and_classify, record.caller_number, text)
            translation = executor.submit(
                self._translate, voicemail, record.detected_language, preferred, text, token,
            )
            summary = executor.submit(self._summarize, text)

        token.raise_if_cancelled()
        try:
            verdict, classification = scoring.result()
        except StageVerificationError as exc:
            self._fail(record, exc)
            return
        translated, translation_error = translation.result()
        summary_text = summary.result()

        record.apply_spam(verdict)
        record.apply_classification(classification)
        if translated is not None:
            record.translated_text = translated.translated_text
            record.translation_provider = translated.provider
        record.translation_error = translation_error
        record.summary = summary_text

        # ==================================================================
        # FINAL: verification
        # ==================================================================
        record.status = ProcessingStatus.COMPLETED
        try:
            verify_record(record)
        except StageVerificationError as exc:
            self._fail(record, exc)
            return

        logger.info(
            "Pipeline complete — spam=%s, priority=%s, translated=%s, summary=%s.",
            record.is_spam, record.priority.value,
            record.translated_text is not None, record.summary is not None,
        )

    def _detect_language(self, audio: AudioClip, preferred: str, token: CancellationToken) -> str:
        """Most likely locale; the user's preferred language when detection fails."""
        preferred_locale = to_locale(preferred)
        try:
            candidates = self._identifier.identify(audio, (preferred_locale,), cancel_token=token)
        except CancelledError:
            raise
        except VoicemailProcessingError as exc:
            logger.warning(
                "Language detection failed: %s — falling back to %s.", exc, preferred_locale,
            )
            return preferred_locale

        locale = to_locale(candidates[0][0])
        logger.info("Stage 1 complete: detected %s (confidence %.2f).", locale, candidates[0][1])
        return locale

    def _score_and_classify(self, caller_number: str, text: str) -> tuple[SpamVerdict, Classification]:
        verdict = self._spam_scorer.score(caller_number, text)
        verify_spam(verdict)
        classification = self._classifier.classify(text, verdict.is_spam)
        verify_classification(classification, verdict.is_spam)
        return verdict, classification

    def _translate(
        self,
        voicemail: VoicemailInput,
        detected_language: str,
        preferred: str,
        text: str,
        token: CancellationToken,
    ) -> tuple[TranslationResult | None, str | None]:
        """Returns (result, error); both None when translation is not needed."""
        if same_language(detected_language, preferred):
            logger.info("Translation skipped: voicemail already in %s.", preferred)
            return None, None

        quality = self._settings.quality_for(voicemail.subscription_tier)
        if quality is None:
            logger.info(
                "Translation skipped: %s subscription does not include translation.",
                voicemail.subscription_tier.value,
            )
            return None, None

        try:
            result = self._translator.translate(
                text, detected_language, base_language(preferred), quality, cancel_token=token,
            )
            verify_translation(result)
        except CancelledError:
            raise
        except VoicemailProcessingError as exc:
            logger.warning("Translation failed (non-fatal): %s", exc)
            return None, str(exc)
        except Exception as exc:
            logger.error("Translation failed unexpectedly (non-fatal): %s", exc, exc_info=True)
            return None, f"{type(exc).__name__}: {exc}"

        logger.info("Stage 4 complete: translated by %s.", result.provider)
        return result, None

    def _summarize(self, text: str) -> str | None:
        if len(text) <= self._settings.summary_min_length:
            return None
        return self._summarizer.summarize(text)

    def _fail(self, record: ProcessedVoicemail, exc: Exception) -> None:
        logger.error("Voicemail %s failed: %s", record.audio_ref, exc)
        record.status = ProcessingStatus.FAILED
        record.error_message = str(exc)
        # A failed record carries no transcript or analysis, whichever check failed
        record.transcript = None
        record.detected_language = None
        record.translated_text = None
        record.translation_provider = None
        record.translation_error = None
        record.is_spam = None
        record.spam_confidence = None
        record.spam_reasons = []
        record.sentiment = None
        record.category = None
        record.priority = None
        record.summary = None

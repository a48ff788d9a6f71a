"""
src/stage_validator.py
=======================
Stage Output Validator — Voicemail Pipeline

Responsibility:
    - Validate the output of each pipeline stage against its contract
    - FAIL FAST with a clear StageVerificationError when an output is
      invalid
    - NO auto-correction — a bad value is reported, never patched

This module does NOT:
    - Execute any stage logic
    - Call any external API
    - Modify stage outputs
"""

import logging

from src.exceptions import StageVerificationError
from src.schemas.voicemail import (
    Category,
    Classification,
    Priority,
    ProcessedVoicemail,
    ProcessingStatus,
    Sentiment,
    SpamVerdict,
    TranscriptResult,
    TranslationResult,
)

logger = logging.getLogger("voicemail.stage_validator")


# =====================================================================
# Transcription
# =====================================================================


def verify_transcript(result: TranscriptResult) -> None:
    """
    Checks:
        - Text is a non-empty string
        - Every kept segment confidence is within [0, 1]
    """
    if not isinstance(result, TranscriptResult):
        raise StageVerificationError(
            "transcription", f"Expected TranscriptResult, got {type(result).__name__}"
        )
    if not isinstance(result.text, str) or not result.text.strip():
        raise StageVerificationError("transcription", "Transcript text is empty")
    for i, confidence in enumerate(result.segment_confidences):
        if not 0.0 <= confidence <= 1.0:
            raise StageVerificationError(
                "transcription", f"Segment {i} confidence {confidence} outside [0, 1]"
            )


# =====================================================================
# Spam scoring
# =====================================================================


def verify_spam(verdict: SpamVerdict) -> None:
    """
    Checks:
        - Confidence within [0, 1]
        - Reasons are strings
        - is_spam is a bool
    """
    if not isinstance(verdict.is_spam, bool):
        raise StageVerificationError("spam", f"is_spam must be bool, got {verdict.is_spam!r}")
    if not 0.0 <= verdict.confidence <= 1.0:
        raise StageVerificationError(
            "spam", f"Confidence {verdict.confidence} outside [0, 1]"
        )
    if not all(isinstance(reason, str) for reason in verdict.reasons):
        raise StageVerificationError("spam", "Every reason must be a string")


# =====================================================================
# Classification
# =====================================================================


def verify_classification(classification: Classification, is_spam: bool) -> None:
    """
    Checks:
        - Sentiment, category and priority are valid enum members
        - Spam voicemails are always low priority
    """
    if not isinstance(classification.sentiment, Sentiment):
        raise StageVerificationError(
            "classification", f"Invalid sentiment {classification.sentiment!r}"
        )
    if not isinstance(classification.category, Category):
        raise StageVerificationError(
            "classification", f"Invalid category {classification.category!r}"
        )
    if not isinstance(classification.priority, Priority):
        raise StageVerificationError(
            "classification", f"Invalid priority {classification.priority!r}"
        )
    if is_spam and classification.priority is not Priority.LOW:
        raise StageVerificationError(
            "classification", "Spam voicemail must have low priority"
        )


# =====================================================================
# Translation
# =====================================================================


def verify_translation(result: TranslationResult) -> None:
    """
    Checks:
        - A successful result carries text
        - Confidence within [0, 1]
    """
    if result.success and not isinstance(result.translated_text, str):
        raise StageVerificationError("translation", "Successful result has no text")
    if not 0.0 <= result.confidence <= 1.0:
        raise StageVerificationError(
            "translation", f"Confidence {result.confidence} outside [0, 1]"
        )


# =====================================================================
# Final record
# =====================================================================


def verify_record(record: ProcessedVoicemail) -> None:
    """
    Checks:
        - Status is terminal
        - A completed record has a transcript, a spam verdict and a
          classification
        - Spam confidence (when present) within [0, 1]
    """
    if not record.status.is_terminal:
        raise StageVerificationError("final", f"Status {record.status.value} is not terminal")

    if record.status is ProcessingStatus.COMPLETED:
        if not record.transcript:
            raise StageVerificationError("final", "Completed record has no transcript")
        if record.is_spam is None or record.spam_confidence is None:
            raise StageVerificationError("final", "Completed record has no spam verdict")
        if record.sentiment is None or record.category is None or record.priority is None:
            raise StageVerificationError("final", "Completed record has no classification")

    if record.spam_confidence is not None and not 0.0 <= record.spam_confidence <= 1.0:
        raise StageVerificationError(
            "final", f"Spam confidence {record.spam_confidence} outside [0, 1]"
        )

    logger.debug("Final record verified (status=%s).", record.status.value)

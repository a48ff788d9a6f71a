# src/stt/__init__.py
# ====================
# Speech-to-Text Layer — Voicemail Pipeline
#
# Stages:
#   1. LanguageIdentifier: rank candidate languages for the audio
#   2. Transcriber: short-form recognition, long-running fallback,
#      confidence filtering
#
# Providers (SpeechProvider implementations):
#   - src/stt/deepgram_client.py  Deepgram Nova-3 (default)
#   - src/stt/whisper_client.py   OpenAI Whisper
#
# Public API:
#   LanguageIdentifier.identify(audio_or_text, hint_languages) -> [(code, confidence)]
#   Transcriber.transcribe(audio_ref, language_code, alternates) -> TranscriptResult

from src.stt.providers import (  # noqa: F401
    LongRunningOperation,
    RecognitionAlternative,
    RecognitionResult,
    SpeechProvider,
)
from src.stt.language_detector import LanguageIdentifier  # noqa: F401
from src.stt.transcriber import Transcriber  # noqa: F401

__all__ = [
    "LanguageIdentifier",
    "LongRunningOperation",
    "RecognitionAlternative",
    "RecognitionResult",
    "SpeechProvider",
    "Transcriber",
]

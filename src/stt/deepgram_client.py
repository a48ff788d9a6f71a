"""
src/stt/deepgram_client.py
===========================
Deepgram Speech Provider — Voicemail Pipeline

Responsibility:
    - Recognize voicemail audio with Deepgram Nova-3
    - Short-form: one RecognitionResult per channel, carrying every
      alternative Deepgram returned with its confidence
    - Long-form: one RecognitionResult per utterance (utterances=True), so
      confidence filtering can drop individual low-confidence utterances
    - Auto-detect the spoken language when the candidates span more than
      one base language; regional alternates keep the requested locale

This module does NOT:
    - Filter results by confidence (handled by the transcriber)
    - Perform speaker diarization
"""

import logging
from typing import Any, Sequence

from deepgram import DeepgramClient

from src.audio.store import AudioClip
from src.exceptions import ProviderError, RateLimitedError
from src.schemas.languages import base_language, spans_languages
from src.stt.providers import RecognitionAlternative, RecognitionResult, SpeechProvider

logger = logging.getLogger("voicemail.stt.deepgram_client")

DEEPGRAM_MODEL = "nova-3"

# Audio above this size goes through the long-form (utterance) path
SHORT_FORM_MAX_BYTES = 10 * 1024 * 1024


class DeepgramSpeechProvider(SpeechProvider):
    """Speech provider backed by Deepgram Nova-3."""

    name = "Deepgram"

    def __init__(self, api_key: str = "", client: Any = None):
        if client is None:
            if not api_key:
                raise ProviderError(self.name, "DEEPGRAM_API_KEY is not set.")
            client = DeepgramClient(api_key=api_key)
        self._client = client

    def recognize(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str] = (),
    ) -> list[RecognitionResult]:
        if len(audio.data) > SHORT_FORM_MAX_BYTES:
            logger.info(
                "Audio %s is %d bytes — above the short-form limit; "
                "short-form recognition skipped.",
                audio.filename, len(audio.data),
            )
            return []

        response = self._call(audio, language_code, alternate_languages, utterances=False)

        results: list[RecognitionResult] = []
        for channel in _channels(response):
            language = _channel_language(channel) or language_code
            alternatives = tuple(
                RecognitionAlternative(
                    transcript=(_get_attr(alt, "transcript", "") or "").strip(),
                    confidence=float(_get_attr(alt, "confidence", 0.0) or 0.0),
                    language_code=language,
                )
                for alt in _get_attr(channel, "alternatives", None) or []
            )
            alternatives = tuple(alt for alt in alternatives if alt.transcript)
            if alternatives:
                results.append(RecognitionResult(alternatives=alternatives, language_code=language))

        if not results:
            logger.warning(
                "Deepgram returned no transcript for %s (%d bytes).",
                audio.filename, len(audio.data),
            )
        return results

    def long_running_recognize(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str] = (),
    ) -> list[RecognitionResult]:
        response = self._call(audio, language_code, alternate_languages, utterances=True)

        channels = _channels(response)
        language = (_channel_language(channels[0]) if channels else None) or language_code

        results_obj = _get_attr(response, "results", None)
        results: list[RecognitionResult] = []
        for utterance in _get_attr(results_obj, "utterances", None) or []:
            text = (_get_attr(utterance, "transcript", "") or "").strip()
            if not text:
                continue
            confidence = float(_get_attr(utterance, "confidence", 0.0) or 0.0)
            results.append(RecognitionResult(
                alternatives=(RecognitionAlternative(text, confidence, language),),
                language_code=language,
            ))

        logger.info("Deepgram long-form: %d utterance(s).", len(results))
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _call(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str],
        *,
        utterances: bool,
    ):
        options: dict[str, Any] = {
            "model": DEEPGRAM_MODEL,
            "smart_format": True,
            "punctuate": True,
            "utterances": utterances,
        }
        if spans_languages(language_code, alternate_languages):
            options["detect_language"] = True
        else:
            options["language"] = language_code

        try:
            logger.debug("Sending %d bytes to Deepgram (%s)...", len(audio.data), DEEPGRAM_MODEL)
            return self._client.listen.v1.media.transcribe_file(request=audio.data, **options)
        except Exception as exc:
            if getattr(exc, "status_code", None) == 429:
                raise RateLimitedError(self.name) from exc
            raise ProviderError(self.name, f"Deepgram transcription failed: {exc}") from exc


def _channels(response) -> list:
    results = _get_attr(response, "results", None)
    if results is None:
        return []
    return list(_get_attr(results, "channels", None) or [])


def _channel_language(channel) -> str | None:
    detected = _get_attr(channel, "detected_language", None)
    if not detected:
        return None
    return base_language(detected)


def _get_attr(obj, name: str, default):
    """Get an attribute from an SDK object or dict key, with a default."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)

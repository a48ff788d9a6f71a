"""
src/stt/whisper_client.py
==========================
OpenAI Whisper Speech Provider — Voicemail Pipeline

Responsibility:
    - Recognize voicemail audio with the OpenAI Whisper API
    - Report one RecognitionResult per Whisper segment, with the segment
      confidence derived from its average token log-probability
    - Report the language Whisper detected (as an ISO 639-1 code)
    - Long-form path: split audio into chunks and recognize them in
      parallel, since Whisper rejects uploads over 25 MB

This module does NOT:
    - Filter segments by confidence (handled by the transcriber)
    - Translate text
"""

import io
import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Sequence

import openai
from openai import OpenAI

from src.audio.chunker import chunk_audio
from src.audio.store import AudioClip
from src.exceptions import ProviderError, RateLimitedError
from src.schemas.languages import LANGUAGE_NAMES, base_language, spans_languages
from src.stt.providers import RecognitionAlternative, RecognitionResult, SpeechProvider

logger = logging.getLogger("voicemail.stt.whisper_client")
logging.getLogger("openai._base_client").setLevel(logging.WARNING)

WHISPER_MODEL = "whisper-1"
MAX_UPLOAD_BYTES = 25 * 1024 * 1024
MAX_WORKERS = 4

# verbose_json reports the language as an English name ("english")
_NAME_TO_CODE: dict[str, str] = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}


class WhisperSpeechProvider(SpeechProvider):
    """Speech provider backed by OpenAI Whisper."""

    name = "Whisper"

    def __init__(self, api_key: str = "", client: Any = None):
        if client is None:
            if not api_key:
                raise ProviderError(self.name, "OPENAI_API_KEY is not set.")
            client = OpenAI(api_key=api_key)
        self._client = client

    def recognize(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str] = (),
    ) -> list[RecognitionResult]:
        if len(audio.data) > MAX_UPLOAD_BYTES:
            logger.info(
                "Audio %s is %d bytes — above the Whisper upload limit; "
                "short-form recognition skipped.",
                audio.filename, len(audio.data),
            )
            return []
        # Candidates in other languages leave Whisper to detect the language itself
        hint = _language_hint(language_code, alternate_languages)
        return self._transcribe(audio.data, audio.filename, hint)

    def long_running_recognize(
        self,
        audio: AudioClip,
        language_code: str,
        alternate_languages: Sequence[str] = (),
    ) -> list[RecognitionResult]:
        hint = _language_hint(language_code, alternate_languages)
        chunks = chunk_audio(audio.data, audio.filename)
        per_chunk: list[list[RecognitionResult]] = [[] for _ in chunks]

        def _recognize_one(index: int) -> list[RecognitionResult]:
            chunk = chunks[index]
            try:
                return self._transcribe(chunk.audio_bytes, f"chunk_{chunk.chunk_id}.wav", hint)
            except ProviderError as exc:
                logger.warning(
                    "Chunk %d (offset=%.1fs) failed Whisper: %s — skipping.",
                    chunk.chunk_id, chunk.offset, exc,
                )
                return []

        with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(chunks))) as executor:
            futures = {executor.submit(_recognize_one, i): i for i in range(len(chunks))}
            for future in as_completed(futures):
                per_chunk[futures[future]] = future.result()

        results = [result for chunk_results in per_chunk for result in chunk_results]
        logger.info(
            "Whisper long-form: %d chunk(s) -> %d segment(s).", len(chunks), len(results),
        )
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _transcribe(
        self, audio_bytes: bytes, filename: str, language: str | None,
    ) -> list[RecognitionResult]:
        audio_file = io.BytesIO(audio_bytes)
        audio_file.name = filename

        kwargs: dict[str, Any] = {
            "model": WHISPER_MODEL,
            "file": audio_file,
            "response_format": "verbose_json",
            "timestamp_granularities": ["segment"],
        }
        if language:
            kwargs["language"] = language

        try:
            response = self._client.audio.transcriptions.create(**kwargs)
        except openai.RateLimitError as exc:
            raise RateLimitedError(self.name, _retry_after(exc)) from exc
        except openai.OpenAIError as exc:
            raise ProviderError(self.name, f"Whisper transcription failed: {exc}") from exc

        detected = _language_code(_get_attr(response, "language", None)) or language
        results: list[RecognitionResult] = []
        for seg in _get_attr(response, "segments", None) or []:
            text = (_get_attr(seg, "text", "") or "").strip()
            if not text:
                continue
            confidence = _segment_confidence(_get_attr(seg, "avg_logprob", None))
            results.append(RecognitionResult(
                alternatives=(RecognitionAlternative(text, confidence, detected),),
                language_code=detected,
            ))

        logger.debug(
            "Whisper returned %d segment(s) for %s (language=%s).",
            len(results), filename, detected or "unknown",
        )
        return results


def _segment_confidence(avg_logprob: float | None) -> float:
    """Map Whisper's average token log-probability to a 0..1 confidence."""
    if avg_logprob is None:
        return 0.0
    return max(0.0, min(1.0, math.exp(float(avg_logprob))))


def _language_code(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip().lower()
    return _NAME_TO_CODE.get(value, value)


def _retry_after(exc: Exception) -> float | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    try:
        return float(headers.get("retry-after"))
    except (TypeError, ValueError):
        return None


def _get_attr(obj, name: str, default):
    """Get an attribute from an SDK object or dict key, with a default."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _language_hint(language_code: str, alternate_languages: Sequence[str]) -> str | None:
    if spans_languages(language_code, alternate_languages):
        return None
    return base_language(language_code)

"""
src/audio/chunker.py
=====================
Audio Chunker — Voicemail Pipeline

Responsibility:
    - Split long voicemail audio into fixed-length mono 16 kHz WAV chunks
      so providers with a short-form size limit can still transcribe it
    - Apply a small overlap between consecutive chunks so words cut at a
      boundary appear whole in at least one chunk

This module does NOT:
    - Perform STT or any NLP
    - Merge chunk transcripts (handled by the provider that chunked)
"""

import logging
from dataclasses import dataclass

from src.audio.normalizer import decode, export_wav, to_pcm

logger = logging.getLogger("voicemail.audio.chunker")

DEFAULT_CHUNK_DURATION_SEC: float = 25.0
DEFAULT_OVERLAP_SEC: float = 1.0


@dataclass(frozen=True)
class AudioChunk:
    chunk_id: int
    audio_bytes: bytes
    offset: float    # seconds from the start of the original audio
    duration: float  # seconds


def chunk_audio(
    audio_bytes: bytes,
    filename: str,
    chunk_duration: float = DEFAULT_CHUNK_DURATION_SEC,
    overlap: float = DEFAULT_OVERLAP_SEC,
) -> list[AudioChunk]:
    """
    Split audio into overlapping WAV chunks.

    Args:
        audio_bytes:    Raw audio in any supported voicemail format.
        filename:       Name used to infer the format.
        chunk_duration: Target chunk length in seconds.
        overlap:        Overlap between consecutive chunks in seconds.

    Returns:
        Chunks in playback order. Audio shorter than ``chunk_duration``
        yields a single chunk.

    Raises:
        AudioDecodeError: If the audio cannot be decoded.
        ValueError:       If overlap is not smaller than chunk_duration.
    """
    if overlap >= chunk_duration:
        raise ValueError("overlap must be smaller than chunk_duration")

    audio = to_pcm(decode(audio_bytes, filename))
    total_ms = len(audio)
    step_ms = int((chunk_duration - overlap) * 1000)
    chunk_ms = int(chunk_duration * 1000)

    chunks: list[AudioChunk] = []
    start_ms = 0
    while start_ms < total_ms:
        end_ms = min(start_ms + chunk_ms, total_ms)
        piece = audio[start_ms:end_ms]
        chunks.append(AudioChunk(
            chunk_id=len(chunks),
            audio_bytes=export_wav(piece),
            offset=start_ms / 1000.0,
            duration=(end_ms - start_ms) / 1000.0,
        ))
        if end_ms >= total_ms:
            break
        start_ms += step_ms

    logger.info(
        "Audio (%.1fs) split into %d chunk(s) of ~%.0fs.",
        total_ms / 1000.0, len(chunks), chunk_duration,
    )
    return chunks

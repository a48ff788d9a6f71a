"""
src/audio/normalizer.py
========================
Audio Normalizer — Voicemail Pipeline

Responsibility:
    - Decode carrier voicemail audio (.wav, .mp3, .m4a, .amr, .ogg, .3gp)
    - Validate audio is non-empty and within duration limits
    - Convert audio to mono 16 kHz WAV for providers that need PCM input
      (long-form chunked recognition)

No storage or downstream processing occurs here.
"""

import io

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from src.exceptions import InsufficientInputError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ALLOWED_EXTENSIONS = {".wav", ".mp3", ".m4a", ".amr", ".ogg", ".3gp"}
TARGET_SAMPLE_RATE = 16000  # Hz
TARGET_CHANNELS = 1  # mono
MAX_DURATION_SECONDS = 1800  # 30 minutes
OUTPUT_FORMAT = "wav"


class AudioDecodeError(InsufficientInputError):
    """Raised when audio bytes cannot be decoded or fail validation."""

    def __init__(self, message: str):
        super().__init__("audio", message)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode(audio_bytes: bytes, filename: str) -> AudioSegment:
    """
    Decode and validate audio bytes.

    Raises:
        AudioDecodeError: Empty input, unsupported/corrupt audio, bad duration.
    """
    if not audio_bytes:
        raise AudioDecodeError("Audio file is empty.")

    ext = _extract_extension(filename)
    if ext and ext not in ALLOWED_EXTENSIONS:
        raise AudioDecodeError(
            f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    try:
        audio = AudioSegment.from_file(
            io.BytesIO(audio_bytes), format=ext.lstrip(".") or None,
        )
    except CouldntDecodeError as exc:
        raise AudioDecodeError("Audio file is corrupt or could not be decoded.") from exc

    duration_seconds = len(audio) / 1000.0
    if duration_seconds == 0:
        raise AudioDecodeError("Audio file has zero duration.")
    if duration_seconds > MAX_DURATION_SECONDS:
        raise AudioDecodeError(
            f"Audio duration ({duration_seconds:.1f}s) exceeds the "
            f"maximum allowed ({MAX_DURATION_SECONDS}s)."
        )
    return audio


def to_pcm(audio: AudioSegment) -> AudioSegment:
    """Convert a decoded segment to mono 16 kHz."""
    if audio.channels != TARGET_CHANNELS:
        audio = audio.set_channels(TARGET_CHANNELS)
    if audio.frame_rate != TARGET_SAMPLE_RATE:
        audio = audio.set_frame_rate(TARGET_SAMPLE_RATE)
    return audio


def export_wav(audio: AudioSegment) -> bytes:
    buffer = io.BytesIO()
    audio.export(buffer, format=OUTPUT_FORMAT)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _extract_extension(filename: str) -> str:
    """Return lowercase file extension including the dot, e.g. '.wav'."""
    dot_index = filename.rfind(".")
    if dot_index == -1:
        return ""
    return filename[dot_index:].lower()

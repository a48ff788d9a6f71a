"""
src/exceptions.py
==================
Error taxonomy — Voicemail Pipeline

Every stage raises one of these. The pipeline decides which ones are
fatal (transcription) and which are absorbed (language detection,
translation).
"""

from dataclasses import dataclass


class VoicemailProcessingError(Exception):
    """Base class for all pipeline errors."""


class InsufficientInputError(VoicemailProcessingError):
    """Raised when a stage receives empty or unusable input."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class AudioUnavailableError(VoicemailProcessingError):
    """Raised when the audio store cannot resolve an audio reference."""

    def __init__(self, audio_ref: str, message: str):
        self.audio_ref = audio_ref
        self.message = message
        super().__init__(f"Audio '{audio_ref}' unavailable: {message}")


class TranscriptionError(VoicemailProcessingError):
    """Raised when no usable transcript survives all recognition paths."""

    def __init__(self, audio_ref: str, message: str, cause: Exception | None = None):
        self.audio_ref = audio_ref
        self.message = message
        self.cause = cause
        super().__init__(f"Transcription failed for '{audio_ref}': {message}")


class ProviderError(VoicemailProcessingError):
    """Raised when an external provider call fails."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class RateLimitedError(ProviderError):
    """Raised when a provider signals throttling (HTTP 429 or equivalent)."""

    def __init__(self, provider: str, retry_after: float | None = None):
        self.retry_after = retry_after
        detail = "rate limited"
        if retry_after is not None:
            detail += f" (retry after {retry_after:.0f}s)"
        super().__init__(provider, detail)


class ProviderTimeoutError(ProviderError, TimeoutError):
    """Raised when a provider call exceeds its per-call time bound."""

    def __init__(self, provider: str, timeout: float):
        self.timeout = timeout
        super().__init__(provider, f"timed out after {timeout:.1f}s")


class CancelledError(VoicemailProcessingError):
    """Raised when the caller cancels an in-flight invocation."""

    def __init__(self, message: str = "Processing cancelled by caller"):
        super().__init__(message)


@dataclass(frozen=True)
class ProviderFailure:
    """One failed attempt in a failover chain."""

    provider: str
    reason: str


class AllProvidersExhaustedError(VoicemailProcessingError):
    """Raised when every eligible translation provider failed."""

    def __init__(self, failures: list[ProviderFailure]):
        self.failures = list(failures)
        if self.failures:
            summary = "; ".join(f"{f.provider}: {f.reason}" for f in self.failures)
        else:
            summary = "no eligible provider for this request"
        super().__init__(f"All translation providers failed ({summary})")


class BatchSizeExceededError(VoicemailProcessingError):
    """Raised when a batch translation request exceeds the configured cap."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Batch size {size} exceeds the maximum of {limit} texts")


class StageVerificationError(VoicemailProcessingError):
    """Raised when a stage output fails verification."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"Stage '{stage}' verification failed: {message}")

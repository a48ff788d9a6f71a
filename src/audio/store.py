"""
src/audio/store.py
===================
Audio Store — Voicemail Pipeline

Responsibility:
    - Resolve an opaque audio reference to raw audio bytes
    - Support local paths / file:// URIs and http(s) URLs

The pipeline never manages storage lifecycle: it only reads.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests

from src.exceptions import AudioUnavailableError

logger = logging.getLogger("voicemail.audio.store")


@dataclass(frozen=True)
class AudioClip:
    """Resolved audio: bytes plus the filename used to infer its format."""

    data: bytes
    filename: str


class AudioStore(ABC):
    """Resolves audio references to bytes."""

    @abstractmethod
    def fetch(self, audio_ref: str) -> AudioClip:
        """
        Read the audio behind ``audio_ref``.

        Raises:
            AudioUnavailableError: If the reference cannot be resolved or is empty.
        """


class FileAudioStore(AudioStore):
    """Reads plain paths and file:// URIs, optionally relative to a root."""

    def __init__(self, root: Path | None = None):
        self._root = root

    def fetch(self, audio_ref: str) -> AudioClip:
        parsed = urlparse(audio_ref)
        raw_path = unquote(parsed.path) if parsed.scheme == "file" else audio_ref
        path = Path(raw_path)
        if self._root is not None and not path.is_absolute():
            path = self._root / path

        try:
            data = path.read_bytes()
        except OSError as exc:
            raise AudioUnavailableError(audio_ref, str(exc)) from exc

        if not data:
            raise AudioUnavailableError(audio_ref, "audio file is empty")

        logger.debug("Read %d bytes from %s.", len(data), path)
        return AudioClip(data=data, filename=path.name)


class HttpAudioStore(AudioStore):
    """Downloads audio from http(s) URLs."""

    def __init__(self, timeout: float = 30.0, session: requests.Session | None = None):
        self._timeout = timeout
        self._session = session or requests.Session()

    def fetch(self, audio_ref: str) -> AudioClip:
        try:
            response = self._session.get(audio_ref, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise AudioUnavailableError(audio_ref, str(exc)) from exc

        if not response.content:
            raise AudioUnavailableError(audio_ref, "download returned no content")

        filename = Path(urlparse(audio_ref).path).name or "voicemail.wav"
        logger.debug("Downloaded %d bytes from %s.", len(response.content), audio_ref)
        return AudioClip(data=response.content, filename=filename)


class RoutingAudioStore(AudioStore):
    """Dispatches on URI scheme: http(s) to HttpAudioStore, anything else to files."""

    def __init__(self, file_store: AudioStore | None = None, http_store: AudioStore | None = None):
        self._file_store = file_store or FileAudioStore()
        self._http_store = http_store or HttpAudioStore()

    def fetch(self, audio_ref: str) -> AudioClip:
        if not audio_ref or not audio_ref.strip():
            raise AudioUnavailableError(audio_ref or "", "empty audio reference")
        scheme = urlparse(audio_ref).scheme.lower()
        if scheme in ("http", "https"):
            return self._http_store.fetch(audio_ref)
        return self._file_store.fetch(audio_ref)

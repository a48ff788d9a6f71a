# src/audio/__init__.py
# ======================
# Audio Layer — Voicemail Pipeline
#
# Responsibility:
#   - Resolve audio references to bytes (store.py)
#   - Decode / validate carrier audio formats (normalizer.py)
#   - Split long audio into chunks for chunked recognition (chunker.py)

from src.audio.store import (  # noqa: F401
    AudioClip,
    AudioStore,
    FileAudioStore,
    HttpAudioStore,
    RoutingAudioStore,
)

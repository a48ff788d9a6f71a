# src/translation/__init__.py
# ============================
# Translation Layer — Voicemail Pipeline
#
# Responsibility:
#   - Provider backends behind one capability (backends.py)
#   - Failover orchestration with translation memory (orchestrator.py)
#   - Shared, lock-protected memory and usage counters (memory.py, usage.py)
#
# Public API:
#   TranslationOrchestrator.translate(text, source, target, quality_tier)
#   TranslationOrchestrator.translate_batch(texts, target)

from src.translation.backends import (  # noqa: F401
    BackendTranslation,
    TranslationBackend,
    build_backends,
)
from src.translation.memory import MemoryEntry, TranslationMemory  # noqa: F401
from src.translation.orchestrator import TranslationOrchestrator  # noqa: F401
from src.translation.usage import ProviderUsage, UsageTracker  # noqa: F401

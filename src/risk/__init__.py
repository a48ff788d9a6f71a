# src/risk/__init__.py
# =====================
# Spam Risk Layer — Voicemail Pipeline
#
# Responsibility:
#   - Additive, deterministic spam scoring from caller number + transcript
#   - Known spam-number lookups through an externally owned registry
#
# Public API:
#   - SpamScorer.score(caller_number, transcript) -> SpamVerdict
#   - StaticSpamRegistry / SpamNumberRegistry

from src.risk.registry import (  # noqa: F401
    SpamNumberRegistry,
    StaticSpamRegistry,
    normalize_number,
)
from src.risk.spam_scorer import SpamScorer  # noqa: F401

# src/nlp/__init__.py
# ====================
# Text Analysis Layer — Voicemail Pipeline
#
# Responsibility:
#   - Sentiment / category / priority from keyword buckets (classifier.py)
#   - Extractive summary for long transcripts (summarizer.py)
#
# Both are pure functions over an already-validated transcript; neither
# can fail the pipeline.

from src.nlp.classifier import ContentClassifier  # noqa: F401
from src.nlp.summarizer import Summarizer  # noqa: F401

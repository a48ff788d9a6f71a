"""
src/nlp/summarizer.py
======================
Extractive Summarizer — Voicemail Pipeline

Policy: split on sentence-ending periods and drop empty fragments. Two
sentences or fewer come back unchanged; longer text becomes
"{first sentence}. {last sentence}."

The pipeline only calls this for transcripts longer than
Settings.summary_min_length characters.
"""

import logging

logger = logging.getLogger("voicemail.nlp.summarizer")


class Summarizer:
    def summarize(self, transcript: str | None) -> str:
        if not transcript or not transcript.strip():
            return ""

        sentences = [s.strip() for s in transcript.split(".") if s.strip()]
        if len(sentences) <= 2:
            return transcript

        summary = f"{sentences[0]}. {sentences[-1]}."
        logger.info(
            "Summarized %d sentence(s) / %d chars -> %d chars.",
            len(sentences), len(transcript), len(summary),
        )
        return summary

"""
src/schemas/languages.py
=========================
Language code helpers — Voicemail Pipeline

Speech providers speak BCP-47 locales ("en-US", "es-MX"); users and
translation providers speak ISO 639-1 base codes ("en", "es"). These
helpers convert between the two so that language comparisons in the
pipeline are made on the base code.
"""

from typing import Sequence


# Default recognition locale for each supported base language
DEFAULT_LOCALES: dict[str, str] = {
    "en": "en-US",
    "es": "es-ES",
    "fr": "fr-FR",
    "de": "de-DE",
    "it": "it-IT",
    "pt": "pt-BR",
    "zh": "zh-CN",
    "ja": "ja-JP",
    "ko": "ko-KR",
}


LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
    "ru": "Russian",
    "hi": "Hindi",
    "nl": "Dutch",
    "sv": "Swedish",
    "no": "Norwegian",
    "da": "Danish",
    "fi": "Finnish",
    "pl": "Polish",
    "tr": "Turkish",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
    "ms": "Malay",
    "tl": "Filipino",
    "sw": "Swahili",
    "he": "Hebrew",
    "fa": "Persian",
    "ur": "Urdu",
    "bn": "Bengali",
}


def base_language(code: str | None) -> str:
    """Return the lower-cased ISO 639-1 part of a language tag ("en-US" -> "en")."""
    if not code:
        return ""
    return code.replace("_", "-").split("-", 1)[0].strip().lower()


def to_locale(code: str) -> str:
    """
    Expand a base code to its default recognition locale.

    Codes that already carry a region are returned unchanged; unknown base
    codes fall back to the bare code.
    """
    if "-" in code or "_" in code:
        return code.replace("_", "-")
    return DEFAULT_LOCALES.get(code.lower(), code.lower())


def same_language(a: str | None, b: str | None) -> bool:
    """True when both tags share a base language ("en-US" == "en")."""
    return bool(a) and bool(b) and base_language(a) == base_language(b)


def language_name(code: str) -> str:
    base = base_language(code)
    return LANGUAGE_NAMES.get(base, base.upper())


def spans_languages(language_code: str, alternates: Sequence[str]) -> bool:
    """True when some alternate is a different base language, not just a regional variant."""
    primary = base_language(language_code)
    return any(base_language(a) != primary for a in alternates if a)

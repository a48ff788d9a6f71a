"""
src/translation/backends.py
============================
Translation Backends — Voicemail Pipeline

Responsibility:
    - Define the single capability every translation provider implements:
        translate(text, source, target) -> BackendTranslation
      plus an optional detect(text) -> (language, confidence)
    - Google Translate, DeepL and Microsoft Translator over REST (requests)
    - OpenAI chat completions as the premium backend

Every backend raises instead of returning error flags:
    - RateLimitedError on HTTP 429
    - ProviderError on any other HTTP / transport / payload failure

This module does NOT:
    - Choose which backend runs (handled by the orchestrator)
    - Apply timeouts (the orchestrator bounds every call)
    - Record usage or translation memory
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import openai
import requests
from openai import OpenAI

from src.config import ProviderConfig
from src.exceptions import ProviderError, RateLimitedError
from src.openai_retry import chat_completions_with_retry
from src.schemas.languages import base_language, language_name

logger = logging.getLogger("voicemail.translation.backends")

HTTP_TIMEOUT_SECONDS = 30

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"
DEEPL_FREE_URL = "https://api-free.deepl.com/v2"
MICROSOFT_TRANSLATOR_URL = "https://api.cognitive.microsofttranslator.com"
OPENAI_TRANSLATION_MODEL = "gpt-4o-mini"


@dataclass
class BackendTranslation:
    """Raw provider output; ``confidence`` is None when the provider reports none."""

    text: str
    detected_source: str | None = None
    confidence: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class TranslationBackend(ABC):
    """One translation provider behind the common capability."""

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    def translate(self, text: str, source_language: str, target_language: str) -> BackendTranslation:
        """
        Translate ``text``; ``source_language`` may be "auto".

        Raises:
            RateLimitedError: The provider throttled the request.
            ProviderError:    Any other failure.
        """

    def detect(self, text: str) -> tuple[str, float] | None:
        """Detect the language of ``text``; None when the backend cannot."""
        return None


# ---------------------------------------------------------------------------
# REST backends
# ---------------------------------------------------------------------------


class _HttpBackend(TranslationBackend):
    def __init__(self, config: ProviderConfig, session: requests.Session | None = None):
        super().__init__(config)
        self._session = session or requests.Session()

    def _post(self, url: str, **kwargs: Any) -> Any:
        try:
            resp = self._session.post(url, timeout=HTTP_TIMEOUT_SECONDS, **kwargs)
        except requests.RequestException as exc:
            raise ProviderError(self.name, f"request failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitedError(self.name, _retry_after(resp.headers.get("Retry-After")))
        if resp.status_code >= 400:
            raise ProviderError(self.name, f"HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderError(self.name, "response was not valid JSON") from exc


class GoogleTranslateBackend(_HttpBackend):
    def translate(self, text: str, source_language: str, target_language: str) -> BackendTranslation:
        payload: dict[str, Any] = {
            "q": text,
            "target": base_language(target_language),
            "format": "text",
        }
        if source_language and source_language != "auto":
            payload["source"] = base_language(source_language)

        body = self._post(
            self.config.endpoint or GOOGLE_TRANSLATE_URL,
            params={"key": self.config.api_key},
            json=payload,
        )
        try:
            translation = body["data"]["translations"][0]
            translated = translation["translatedText"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.name, "no translation in response") from exc

        return BackendTranslation(
            text=translated,
            detected_source=translation.get("detectedSourceLanguage"),
            metadata={"characters_billed": len(text)},
        )

    def detect(self, text: str) -> tuple[str, float] | None:
        body = self._post(
            f"{self.config.endpoint or GOOGLE_TRANSLATE_URL}/detect",
            params={"key": self.config.api_key},
            json={"q": text},
        )
        try:
            detections = body["data"]["detections"][0]
        except (KeyError, IndexError, TypeError):
            return None
        if not detections:
            return None
        top = max(detections, key=lambda d: float(d.get("confidence", 0.0)))
        if not top.get("language"):
            return None
        return top["language"], float(top.get("confidence", 0.0))


class DeepLBackend(_HttpBackend):
    # DeepL wants regional variants for these targets
    _TARGET_VARIANTS = {"en": "EN-US", "pt": "PT-BR"}

    def translate(self, text: str, source_language: str, target_language: str) -> BackendTranslation:
        target = base_language(target_language)
        form: dict[str, str] = {
            "text": text,
            "target_lang": self._TARGET_VARIANTS.get(target, target.upper()),
        }
        if source_language and source_language != "auto":
            form["source_lang"] = base_language(source_language).upper()

        body = self._post(
            f"{self.config.endpoint or DEEPL_FREE_URL}/translate",
            headers={"Authorization": f"DeepL-Auth-Key {self.config.api_key}"},
            data=form,
        )
        try:
            translation = body["translations"][0]
            translated = translation["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.name, "no translation in response") from exc

        detected = translation.get("detected_source_language")
        return BackendTranslation(
            text=translated,
            detected_source=detected.lower() if detected else None,
            metadata={"characters_billed": len(text), "detected_source": detected or "unknown"},
        )


class MicrosoftTranslatorBackend(_HttpBackend):
    def _headers(self) -> dict[str, str]:
        headers = {"Ocp-Apim-Subscription-Key": self.config.api_key}
        if self.config.region:
            headers["Ocp-Apim-Subscription-Region"] = self.config.region
        return headers

    def translate(self, text: str, source_language: str, target_language: str) -> BackendTranslation:
        params = {"api-version": "3.0", "to": base_language(target_language)}
        if source_language and source_language != "auto":
            params["from"] = base_language(source_language)

        body = self._post(
            f"{self.config.endpoint or MICROSOFT_TRANSLATOR_URL}/translate",
            params=params,
            headers=self._headers(),
            json=[{"Text": text}],
        )
        try:
            item = body[0]
            translated = item["translations"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.name, "no translation in response") from exc

        detected = item.get("detectedLanguage") or {}
        score = detected.get("score")
        return BackendTranslation(
            text=translated,
            detected_source=detected.get("language"),
            confidence=float(score) if score is not None else None,
            metadata={"characters_billed": len(text), "detected_score": score or 0},
        )

    def detect(self, text: str) -> tuple[str, float] | None:
        body = self._post(
            f"{self.config.endpoint or MICROSOFT_TRANSLATOR_URL}/detect",
            params={"api-version": "3.0"},
            headers=self._headers(),
            json=[{"Text": text}],
        )
        try:
            item = body[0]
            return item["language"], float(item.get("score", 0.0))
        except (KeyError, IndexError, TypeError):
            return None


# ---------------------------------------------------------------------------
# OpenAI backend
# ---------------------------------------------------------------------------


_OPENAI_SYSTEM_PROMPT: str = (
    "You are a professional translator for voicemail transcripts. "
    "Translate the user's message into {target}. "
    "Preserve the meaning exactly — do not add, remove, or interpret anything. "
    "Keep names, phone numbers and dates unchanged. "
    "Return ONLY the translated text."
)


class OpenAITranslationBackend(TranslationBackend):
    def __init__(self, config: ProviderConfig, client: Any = None):
        super().__init__(config)
        self._client = client or OpenAI(api_key=config.api_key)

    def translate(self, text: str, source_language: str, target_language: str) -> BackendTranslation:
        system = _OPENAI_SYSTEM_PROMPT.format(target=language_name(target_language))
        if source_language and source_language != "auto":
            system += f" The source language is {language_name(source_language)}."

        try:
            response = chat_completions_with_retry(
                self._client,
                model=OPENAI_TRANSLATION_MODEL,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": text},
                ],
                temperature=0.0,
            )
        except openai.OpenAIError as exc:
            raise ProviderError(self.name, f"OpenAI translation failed: {exc}") from exc

        try:
            translated = (response.choices[0].message.content or "").strip()
        except (AttributeError, IndexError) as exc:
            raise ProviderError(self.name, "no choices in response") from exc
        if not translated:
            raise ProviderError(self.name, "empty translation returned")

        usage = getattr(response, "usage", None)
        return BackendTranslation(
            text=translated,
            metadata={
                "model": OPENAI_TRANSLATION_MODEL,
                "characters_billed": len(text),
                "total_tokens": getattr(usage, "total_tokens", None),
            },
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


_BACKEND_TYPES: dict[str, type[TranslationBackend]] = {
    "GoogleTranslate": GoogleTranslateBackend,
    "DeepL": DeepLBackend,
    "MicrosoftTranslator": MicrosoftTranslatorBackend,
    "OpenAI": OpenAITranslationBackend,
}


def build_backends(configs: tuple[ProviderConfig, ...]) -> list[TranslationBackend]:
    """Instantiate a backend for every enabled, known provider config."""
    backends: list[TranslationBackend] = []
    for config in configs:
        if not config.enabled:
            logger.info("Translation provider %s disabled (no API key).", config.name)
            continue
        backend_type = _BACKEND_TYPES.get(config.name)
        if backend_type is None:
            logger.warning("Unknown translation provider %s — skipped.", config.name)
            continue
        backends.append(backend_type(config))
    return backends


def _retry_after(raw: str | None) -> float | None:
    try:
        return float(raw) if raw is not None else None
    except ValueError:
        return None

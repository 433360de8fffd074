"""Machine translation of rendered markup.

Only text runs are translated; tags and mustache placeholders pass through
byte for byte. Translations are cached per adapter by
``(locale, normalized text)``, and callers keep one adapter per session.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import httpx

from app.core.config import get_settings
from app.core.markup_lexer import Token, detokenize, tokenize
from app.core.metrics import PerformanceTracker

logger = logging.getLogger(__name__)

TRANSLATE_PATH = "/api/translate"


class TranslationError(Exception):
    """Raised when a translation request fails."""


class Translator(Protocol):
    async def translate(self, text: str, target_locale: str) -> str: ...


class TaggingTranslator:
    """Offline stand-in that prefixes text with the target locale, e.g. ``[ES] Hello``."""

    async def translate(self, text: str, target_locale: str) -> str:
        return f"[{target_locale.upper()}] {text}"


class HttpTranslator:
    """Translator backed by the translation endpoint of the analysis server."""

    def __init__(self, base_url: str, timeout: float | None = None, source_locale: str = "en"):
        self.base_url = base_url
        self.timeout = timeout or get_settings().TRANSLATION_TIMEOUT_SECONDS
        self.source_locale = source_locale

    async def translate(self, text: str, target_locale: str) -> str:
        payload = {
            "text": text,
            "targetLanguage": target_locale,
            "sourceLanguage": self.source_locale,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url.rstrip('/')}{TRANSLATE_PATH}", json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TranslationError(f"Translation request failed: {e}") from e

        if not isinstance(data, dict) or not data.get("success") or "translatedText" not in data:
            error = data.get("error") if isinstance(data, dict) else None
            raise TranslationError(error or "Translation failed")
        return str(data["translatedText"])


def get_translator() -> Translator:
    settings = get_settings()
    if settings.TRANSLATION_SERVICE_URL:
        return HttpTranslator(settings.TRANSLATION_SERVICE_URL, source_locale=settings.DEFAULT_LOCALE)
    return TaggingTranslator()


def normalize_text(text: str) -> str:
    return " ".join(text.split())


class TranslationAdapter:
    """Translates markup text runs through a ``Translator`` with a local cache."""

    def __init__(self, translator: Translator | None = None, source_locale: str = "en"):
        self.translator = translator or get_translator()
        self.source_locale = source_locale
        self._cache: dict[tuple[str, str], str] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    async def _fill_cache(self, keys: list[tuple[str, str]]) -> None:
        results = await asyncio.gather(
            *(self.translator.translate(text, locale) for locale, text in keys),
            return_exceptions=True,
        )
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.warning(f"Keeping untranslated text for {key[0]}: {result}")
                continue
            self._cache[key] = result

    def _translate_token(self, token: Token, locale: str) -> str:
        if token.kind != "text":
            return token.text
        stripped = token.text.strip()
        if not stripped:
            return token.text

        translated = self._cache.get((locale, normalize_text(stripped)))
        if translated is None:
            return token.text

        leading = token.text[: len(token.text) - len(token.text.lstrip())]
        trailing = token.text[len(token.text.rstrip()):]
        return f"{leading}{translated}{trailing}"

    async def translate_markup(
        self,
        markup: str,
        locale: str,
        perf: PerformanceTracker | None = None,
    ) -> str:
        if locale == self.source_locale:
            return markup

        tokens = tokenize(markup)
        keys: list[tuple[str, str]] = []
        seen: set[tuple[str, str]] = set()
        hits = 0
        for token in tokens:
            if token.kind != "text" or not token.text.strip():
                continue
            key = (locale, normalize_text(token.text))
            if key in self._cache:
                hits += 1
            elif key not in seen:
                seen.add(key)
                keys.append(key)

        if perf is not None:
            perf.record_cache_hit(hits)
            perf.record_cache_miss(len(keys))
            perf.record_service_call(len(keys))

        if keys:
            await self._fill_cache(keys)

        return detokenize(
            [Token(token.kind, self._translate_token(token, locale)) for token in tokens]
        )

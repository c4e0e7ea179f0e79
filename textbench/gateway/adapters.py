"""Model-backed capabilities — detection, summarization and translation by prompting.

Each adapter wraps a BaseModelProvider. A failed ModelResponse is turned
into a ProviderFailure carrying the provider's error text.
"""

from __future__ import annotations

import logging
import re

from textbench.errors import ProviderFailure
from textbench.gateway.capabilities import (
    BaseLanguageDetector,
    BaseSummarizer,
    BaseTranslator,
    BaseTranslatorFactory,
    LanguageCandidate,
)
from textbench.gateway.providers.base import (
    Availability,
    BaseModelProvider,
    ModelResponse,
    ProgressCallback,
)
from textbench.languages import is_supported, language_name

logger = logging.getLogger(__name__)

_LANGUAGE_CODE_RE = re.compile(r"\b([a-z]{2,3})\b")

# Short words a chatty reply wraps around the code
_FILLER_WORDS = frozenset({
    "the", "is", "in", "of", "and", "are", "was", "its", "for", "not", "can", "you", "my",
})

_DETECTION_PROMPT = """Identify the language of the text below.
Respond with ONLY its ISO 639-1 code (for example: en, fr, es), nothing else.
If you cannot tell, respond with: und

Text:
{text}"""

_SUMMARY_SYSTEM = "You write short, faithful summaries. Never add facts that are not in the text."

_SUMMARY_PROMPT = """Summarize the following text in two or three sentences.
{context}
Text:
{text}"""

_TRANSLATION_SYSTEM = (
    "You are a translation engine. Output only the translation, "
    "with no notes, quotes or explanations."
)

_TRANSLATION_PROMPT = "Translate the following text {source}to {target}.\n\nText:\n{text}"


def _unwrap(response: ModelResponse, fallback: str) -> str:
    """Return the response text or raise ProviderFailure."""
    if not response.success:
        raise ProviderFailure(response.error or fallback)
    return response.text


def parse_language_code(raw: str) -> str | None:
    """Pull a language code out of a model reply like 'fr' or 'Language: fr.'

    A supported code anywhere in the reply wins; otherwise the first word
    that is not English filler is taken. Returns None for 'und' or when
    nothing code-shaped is present.
    """
    matches = _LANGUAGE_CODE_RE.findall(raw.strip().lower())
    if len(matches) > 1:
        supported = [m for m in matches if is_supported(m)]
        matches = supported or [m for m in matches if m not in _FILLER_WORDS]
    if not matches or matches[0] == "und":
        return None
    return matches[0]


class ModelLanguageDetector(BaseLanguageDetector):
    """Detect language by asking a model for the ISO code."""

    def __init__(self, provider: BaseModelProvider) -> None:
        self.provider = provider

    async def availability(self) -> Availability:
        return await self.provider.availability()

    async def prepare(self, on_progress: ProgressCallback | None = None) -> None:
        await self.provider.prepare(on_progress)

    async def detect(self, text: str) -> list[LanguageCandidate]:
        response = await self.provider.generate(
            _DETECTION_PROMPT.format(text=text), max_tokens=10, temperature=0.0,
        )
        code = parse_language_code(_unwrap(response, "Language detection failed"))
        if code is None:
            logger.debug(f"Detector gave no usable code: {response.text!r}")
            return []
        return [LanguageCandidate(language=code, confidence=1.0)]


class ModelSummarizer(BaseSummarizer):
    """Summarize with a model."""

    def __init__(self, provider: BaseModelProvider) -> None:
        self.provider = provider

    async def summarize(self, text: str, context: str | None = None) -> str:
        prompt = _SUMMARY_PROMPT.format(
            context=f"Context: {context}\n" if context else "",
            text=text,
        )
        response = await self.provider.generate(prompt, system=_SUMMARY_SYSTEM, max_tokens=300)
        return _unwrap(response, "Summarization failed")


class ModelTranslator(BaseTranslator):
    """Translator bound to one language pair."""

    def __init__(self, provider: BaseModelProvider, source_language: str, target_language: str) -> None:
        self.provider = provider
        self.source_language = source_language
        self.target_language = target_language

    async def translate(self, text: str) -> str:
        source = language_name(self.source_language)
        prompt = _TRANSLATION_PROMPT.format(
            source="" if self.source_language == "unknown" else f"from {source} ",
            target=language_name(self.target_language),
            text=text,
        )
        response = await self.provider.generate(
            prompt, system=_TRANSLATION_SYSTEM, max_tokens=2048, temperature=0.1,
        )
        return _unwrap(response, "Translation failed")


class ModelTranslatorFactory(BaseTranslatorFactory):
    """Creates a fresh ModelTranslator for each requested pair."""

    def __init__(self, provider: BaseModelProvider) -> None:
        self.provider = provider

    async def create(self, source_language: str, target_language: str) -> BaseTranslator:
        if await self.provider.availability() is Availability.UNAVAILABLE:
            raise ProviderFailure(
                f"Translation {source_language}->{target_language} is not available "
                f"({self.provider.provider_name})"
            )
        return ModelTranslator(self.provider, source_language, target_language)

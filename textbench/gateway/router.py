"""Capability gateway — negotiates provider readiness and exposes a uniform async contract.

Readiness is resolved once per process. Detection gates the whole gateway;
summarization is checked lazily at call time; translators are created per
(source, target) pair whenever a translation is requested.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from textbench.config import ProviderConfig, TextBenchConfig
from textbench.errors import CapabilityUnavailable, ProviderFailure
from textbench.gateway.adapters import ModelLanguageDetector, ModelSummarizer, ModelTranslatorFactory
from textbench.gateway.capabilities import (
    BaseLanguageDetector,
    BaseSummarizer,
    BaseTranslatorFactory,
    DetectionResult,
    SummaryResult,
    TranslationResult,
)
from textbench.gateway.providers.anthropic import AnthropicProvider
from textbench.gateway.providers.base import (
    Availability,
    BaseModelProvider,
    DownloadProgress,
    ProgressCallback,
)
from textbench.gateway.providers.groq import GroqProvider
from textbench.gateway.providers.ollama import OllamaProvider

logger = logging.getLogger(__name__)

UNKNOWN_LANGUAGE = "unknown"

_PROVIDERS: dict[str, type[BaseModelProvider]] = {
    "ollama": OllamaProvider,
    "groq": GroqProvider,
    "anthropic": AnthropicProvider,
}


def create_provider(config: ProviderConfig) -> BaseModelProvider | None:
    """Instantiate the model provider named in config, or None for 'none'."""
    if not config.provider or config.provider == "none":
        return None
    provider_cls = _PROVIDERS.get(config.provider)
    if provider_cls is None:
        raise ValueError(
            f"Unknown provider '{config.provider}'. Choose one of: {', '.join(_PROVIDERS)}, none."
        )
    if config.model:
        return provider_cls(model=config.model)
    return provider_cls()


class CapabilityGateway:
    """Gateway to the detection, summarization and translation capabilities.

    Constructed explicitly and handed to the pipeline, so tests can pass
    fake capabilities instead of model-backed ones.
    """

    def __init__(
        self,
        detector: BaseLanguageDetector | None,
        summarizer: BaseSummarizer | None = None,
        translators: BaseTranslatorFactory | None = None,
        fallback_source_language: str = "en",
        providers: list[BaseModelProvider] | None = None,
    ) -> None:
        self._detector = detector
        self._summarizer = summarizer
        self._translators = translators
        self.fallback_source_language = fallback_source_language
        self.detection = Availability.UNAVAILABLE
        self._initialized = False
        self._download: asyncio.Task | None = None
        self._providers = providers or []

    @classmethod
    def from_config(cls, config: TextBenchConfig) -> CapabilityGateway:
        """Build a gateway whose capabilities are backed by configured model providers.

        Capabilities that name the same provider and model share one instance.
        """
        shared: dict[tuple[str, str], BaseModelProvider | None] = {}

        def provider_for(cap: ProviderConfig) -> BaseModelProvider | None:
            key = (cap.provider, cap.model)
            if key not in shared:
                shared[key] = create_provider(cap)
            return shared[key]

        detection = provider_for(config.detection)
        summarization = provider_for(config.summarization)
        translation = provider_for(config.translation)

        return cls(
            detector=ModelLanguageDetector(detection) if detection else None,
            summarizer=ModelSummarizer(summarization) if summarization else None,
            translators=ModelTranslatorFactory(translation) if translation else None,
            fallback_source_language=config.pipeline.fallback_source_language,
            providers=[p for p in shared.values() if p is not None],
        )

    # ─── Negotiation ─────────────────────────────────────────────

    async def initialize(self, on_progress: ProgressCallback | None = None) -> bool:
        """Negotiate capability readiness. Runs once; later calls return the cached outcome.

        A DOWNLOADING detector is brought up in a background task so the
        caller is not blocked; detect_language waits for it.

        Returns:
            The apis_available signal.
        """
        if self._initialized:
            return self.apis_available
        self._initialized = True

        if self._detector is None or self._translators is None:
            logger.warning("Detection or translation capability is not configured")
            return False

        try:
            self.detection = await self._detector.availability()
        except Exception as e:
            logger.error(f"Capability negotiation failed: {e}")
            self.detection = Availability.UNAVAILABLE

        if self.detection is Availability.DOWNLOADING:
            logger.info("Language detector is downloading; detection will wait for it")
            self._download = asyncio.create_task(self._await_download(on_progress))
        elif self.detection is Availability.UNAVAILABLE:
            logger.warning("Language detection unavailable; enrichment disabled for this session")

        return self.apis_available

    async def _await_download(self, on_progress: ProgressCallback | None) -> None:
        def report(progress: DownloadProgress) -> None:
            logger.debug(f"Downloaded {progress.loaded} of {progress.total} bytes.")
            if on_progress:
                on_progress(progress)

        try:
            await self._detector.prepare(report)
        except Exception as e:
            logger.error(f"Language detector download failed: {e}")
            self.detection = Availability.UNAVAILABLE
            return
        self.detection = Availability.READY
        logger.info("Language detector ready")

    async def wait_until_ready(self) -> bool:
        """Wait for a pending download, then report apis_available.

        A cancelled download reports False instead of raising.
        """
        if self._download is not None:
            await asyncio.wait({self._download})
        return self.apis_available

    async def cancel_download(self) -> None:
        """Abandon a pending detector download; detection becomes unavailable."""
        if self._download is None or self._download.done():
            return
        logger.info("Cancelling language detector download")
        self.detection = Availability.UNAVAILABLE
        self._download.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._download

    @property
    def apis_available(self) -> bool:
        """True once negotiation succeeded (a download may still be in progress)."""
        return self._initialized and self.detection is not Availability.UNAVAILABLE

    @property
    def can_summarize(self) -> bool:
        return self.apis_available and self._summarizer is not None

    def _ensure_available(self) -> None:
        if not self.apis_available:
            raise CapabilityUnavailable("AI capability providers are not available")

    # ─── Operations ──────────────────────────────────────────────

    async def detect_language(self, text: str) -> DetectionResult:
        """Detect the language of text; no candidates maps to 'unknown'."""
        self._ensure_available()
        if not await self.wait_until_ready():
            raise CapabilityUnavailable("Language detector could not be downloaded")

        try:
            candidates = await self._detector.detect(text)
        except ProviderFailure:
            raise
        except Exception as e:
            raise ProviderFailure(str(e) or "Language detection failed") from e

        if not candidates or not candidates[0].language:
            return DetectionResult(language=UNKNOWN_LANGUAGE)
        best = candidates[0]
        return DetectionResult(language=best.language, confidence=best.confidence)

    async def summarize(self, text: str, context: str | None = None) -> SummaryResult | None:
        """Summarize text, or return None when no summarizer is configured."""
        self._ensure_available()
        if self._summarizer is None:
            return None

        try:
            summary = await self._summarizer.summarize(text, context=context)
        except ProviderFailure:
            raise
        except Exception as e:
            raise ProviderFailure(str(e) or "Summarization failed") from e
        return SummaryResult(summary=summary)

    async def translate(
        self,
        text: str,
        source_language: str | None,
        target_language: str,
    ) -> TranslationResult:
        """Translate text with a translator created for this exact language pair."""
        self._ensure_available()
        source = source_language or self.fallback_source_language

        try:
            translator = await self._translators.create(source, target_language)
            translation = await translator.translate(text)
        except ProviderFailure:
            raise
        except Exception as e:
            raise ProviderFailure(str(e) or "Translation failed") from e
        return TranslationResult(
            translation=translation,
            source_language=source,
            target_language=target_language,
        )

    async def close(self) -> None:
        """Cancel a pending download and close provider network clients."""
        await self.cancel_download()
        for provider in self._providers:
            await provider.close()

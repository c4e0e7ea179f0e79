"""Capability provider contracts and the result objects the gateway returns.

Detection, summarization and translation are opaque asynchronous services.
Anything implementing these interfaces can be plugged into the
CapabilityGateway, including the fakes used in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from textbench.gateway.providers.base import Availability, ProgressCallback


@dataclass
class LanguageCandidate:
    """One ranked guess from a language detector."""

    language: str
    confidence: float = 0.0


@dataclass
class DetectionResult:
    language: str
    confidence: float = 0.0


@dataclass
class SummaryResult:
    summary: str


@dataclass
class TranslationResult:
    translation: str
    source_language: str
    target_language: str


class BaseLanguageDetector(ABC):
    """Language detection capability."""

    async def availability(self) -> Availability:
        """Report readiness. Detectors that need no download are always READY."""
        return Availability.READY

    async def prepare(self, on_progress: ProgressCallback | None = None) -> None:
        """Wait for a DOWNLOADING detector to become READY."""

    @abstractmethod
    async def detect(self, text: str) -> list[LanguageCandidate]:
        """Return candidates, best first. An empty list is allowed."""
        ...


class BaseSummarizer(ABC):
    """Summarization capability."""

    @abstractmethod
    async def summarize(self, text: str, context: str | None = None) -> str:
        ...


class BaseTranslator(ABC):
    """A translator bound to one (source, target) language pair."""

    @abstractmethod
    async def translate(self, text: str) -> str:
        ...


class BaseTranslatorFactory(ABC):
    """Creates a translator per language pair at call time."""

    @abstractmethod
    async def create(self, source_language: str, target_language: str) -> BaseTranslator:
        ...

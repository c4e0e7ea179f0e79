"""Base model provider interface, response schema and readiness states."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class Availability(str, Enum):
    """Negotiated readiness of a capability."""

    UNAVAILABLE = "unavailable"
    READY = "ready"
    DOWNLOADING = "downloading"   # Transitional, resolves to READY


@dataclass
class DownloadProgress:
    """A single download progress notification."""

    loaded: int = 0
    total: int = 0
    status: str = ""

    @property
    def fraction(self) -> float:
        """Return completion as 0.0 to 1.0 (0.0 when the total is unknown)."""
        if self.total <= 0:
            return 0.0
        return min(1.0, self.loaded / self.total)


ProgressCallback = Callable[[DownloadProgress], None]


@dataclass
class ModelResponse:
    """Response from an AI model provider."""

    text: str = ""
    model: str = ""
    provider: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    success: bool = True
    error: str | None = None


class BaseModelProvider(ABC):
    """Abstract base for all AI model providers.

    Providers wrap model APIs (Ollama, Groq, Anthropic) and
    expose a uniform generate interface plus readiness negotiation.
    """

    model: str = ""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return identifier for this provider (e.g., 'ollama', 'groq', 'anthropic')."""
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> ModelResponse:
        """Generate text from a prompt.

        Args:
            prompt: The user/task prompt.
            system: Optional system prompt for context.
            max_tokens: Maximum tokens in response.
            temperature: Creativity level (0.0 = deterministic, 1.0 = creative).
        """
        ...

    async def availability(self) -> Availability:
        """Report whether the provider can serve requests right now."""
        return Availability.READY

    async def prepare(self, on_progress: ProgressCallback | None = None) -> None:
        """Bring a DOWNLOADING provider to READY. Override if needed."""

    async def close(self) -> None:
        """Release network resources. Override if needed."""

"""Ollama local model provider (free, on-device).

Connects to Ollama running at http://localhost:11434.
A model that is not pulled yet negotiates as DOWNLOADING and is
fetched through the streaming /api/pull endpoint.
"""

from __future__ import annotations

import json
import logging
import os

import httpx

from textbench.errors import ProviderFailure
from textbench.gateway.providers.base import (
    Availability,
    BaseModelProvider,
    DownloadProgress,
    ModelResponse,
    ProgressCallback,
)

logger = logging.getLogger(__name__)


class OllamaProvider(BaseModelProvider):
    """Local Ollama provider — free, offline-capable."""

    def __init__(self, model: str = "gemma:2b", client: httpx.AsyncClient | None = None) -> None:
        self.model = model
        self.base_url = os.getenv("OLLAMA_HOST", "http://localhost:11434")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=60.0)

    @property
    def provider_name(self) -> str:
        return "ollama"

    async def generate(
        self,
        prompt: str,
        system: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> ModelResponse:
        """Generate text using local Ollama model."""
        try:
            payload: dict = {
                "model": self.model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "num_predict": max_tokens,
                    "temperature": temperature,
                },
            }
            if system:
                payload["system"] = system

            resp = await self._client.post("/api/generate", json=payload)
            resp.raise_for_status()
            data = resp.json()

            return ModelResponse(
                text=data.get("response", "").strip(),
                model=self.model,
                provider="ollama",
                input_tokens=data.get("prompt_eval_count", 0),
                output_tokens=data.get("eval_count", 0),
                success=True,
            )
        except httpx.ConnectError:
            return ModelResponse(
                success=False,
                error="Ollama not running. Start with: ollama serve",
                provider="ollama",
                model=self.model,
            )
        except Exception as e:
            return ModelResponse(
                success=False,
                error=f"Ollama error: {e}",
                provider="ollama",
                model=self.model,
            )

    async def availability(self) -> Availability:
        """READY if the model is pulled, DOWNLOADING if it still needs a pull."""
        try:
            resp = await self._client.get("/api/tags")
            resp.raise_for_status()
            models = resp.json().get("models", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Ollama unavailable at {self.base_url}: {e}")
            return Availability.UNAVAILABLE

        names = {m.get("name", "") for m in models} | {m.get("model", "") for m in models}
        if self.model in names or f"{self.model}:latest" in names:
            return Availability.READY
        return Availability.DOWNLOADING

    async def prepare(self, on_progress: ProgressCallback | None = None) -> None:
        """Pull the model, reporting progress for each streamed status line."""
        try:
            async with self._client.stream(
                "POST", "/api/pull", json={"model": self.model, "stream": True}, timeout=None,
            ) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    event = json.loads(line)
                    if error := event.get("error"):
                        raise ProviderFailure(f"Ollama pull failed: {error}")
                    if on_progress:
                        on_progress(DownloadProgress(
                            loaded=event.get("completed", 0),
                            total=event.get("total", 0),
                            status=event.get("status", ""),
                        ))
        except httpx.HTTPError as e:
            raise ProviderFailure(f"Ollama pull failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()

"""Anthropic Claude provider.

Uses the official anthropic SDK for reliable API access.
"""

from __future__ import annotations

import os

import anthropic

from textbench.gateway.providers.base import Availability, BaseModelProvider, ModelResponse


class AnthropicProvider(BaseModelProvider):
    """Anthropic Claude provider — Haiku is plenty for detection and translation."""

    def __init__(self, model: str = "claude-haiku-4-5-20251001") -> None:
        self.model = model
        self.api_key = os.getenv("ANTHROPIC_API_KEY", "")
        self._client: anthropic.AsyncAnthropic | None = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazy-init the Anthropic client."""
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def generate(
        self,
        prompt: str,
        system: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> ModelResponse:
        """Generate text using Claude API."""
        if not self.api_key:
            return ModelResponse(
                success=False,
                error="ANTHROPIC_API_KEY not set. Get one at https://console.anthropic.com/",
                provider="anthropic",
                model=self.model,
            )

        try:
            client = self._get_client()

            kwargs: dict = {
                "model": self.model,
                "max_tokens": max_tokens,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": temperature,
            }
            if system:
                kwargs["system"] = system

            response = await client.messages.create(**kwargs)

            # Extract text from response
            text = ""
            for block in response.content:
                if hasattr(block, "text"):
                    text += block.text

            return ModelResponse(
                text=text.strip(),
                model=self.model,
                provider="anthropic",
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                success=True,
            )
        except Exception as e:
            return ModelResponse(
                success=False,
                error=f"Anthropic error: {e}",
                provider="anthropic",
                model=self.model,
            )

    async def availability(self) -> Availability:
        """Claude is usable whenever an API key is configured."""
        return Availability.READY if self.api_key else Availability.UNAVAILABLE

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

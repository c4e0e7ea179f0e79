"""Groq API provider (fast cloud inference, generous free tier).

Uses OpenAI-compatible chat completions endpoint.
"""

from __future__ import annotations

import os

import httpx

from textbench.gateway.providers.base import Availability, BaseModelProvider, ModelResponse


class GroqProvider(BaseModelProvider):
    """Groq cloud provider — fast inference, generous free tier."""

    def __init__(
        self,
        model: str = "llama-3.1-8b-instant",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.model = model
        self.api_key = os.getenv("GROQ_API_KEY", "")
        self._client = client or httpx.AsyncClient(
            base_url="https://api.groq.com/openai/v1",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=30.0,
        )

    @property
    def provider_name(self) -> str:
        return "groq"

    async def generate(
        self,
        prompt: str,
        system: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> ModelResponse:
        """Generate text using Groq API."""
        if not self.api_key:
            return ModelResponse(
                success=False,
                error="GROQ_API_KEY not set. Get one at https://console.groq.com/keys",
                provider="groq",
                model=self.model,
            )

        try:
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})

            resp = await self._client.post(
                "/chat/completions",
                json={
                    "model": self.model,
                    "messages": messages,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            resp.raise_for_status()
            data = resp.json()

            usage = data.get("usage", {})
            text = data["choices"][0]["message"]["content"].strip()

            return ModelResponse(
                text=text,
                model=self.model,
                provider="groq",
                input_tokens=usage.get("prompt_tokens", 0),
                output_tokens=usage.get("completion_tokens", 0),
                success=True,
            )
        except httpx.HTTPStatusError as e:
            return ModelResponse(
                success=False,
                error=f"Groq API error {e.response.status_code}: {e.response.text[:200]}",
                provider="groq",
                model=self.model,
            )
        except Exception as e:
            return ModelResponse(
                success=False,
                error=f"Groq error: {e}",
                provider="groq",
                model=self.model,
            )

    async def availability(self) -> Availability:
        """Groq is usable whenever an API key is configured."""
        return Availability.READY if self.api_key else Availability.UNAVAILABLE

    async def close(self) -> None:
        await self._client.aclose()

"""Tests for model providers and the model-backed capability adapters."""

from __future__ import annotations

import json

import httpx
import pytest

from textbench.config import ProviderConfig, TextBenchConfig
from textbench.errors import ProviderFailure
from textbench.gateway.adapters import (
    ModelLanguageDetector,
    ModelSummarizer,
    ModelTranslatorFactory,
    parse_language_code,
)
from textbench.gateway.providers.base import Availability, BaseModelProvider, ModelResponse
from textbench.gateway.providers.groq import GroqProvider
from textbench.gateway.providers.ollama import OllamaProvider
from textbench.gateway.router import CapabilityGateway, create_provider


class ScriptedModel(BaseModelProvider):
    """Returns canned responses and records prompts."""

    def __init__(self, reply: str = "", error: str | None = None, readiness=Availability.READY) -> None:
        self.reply = reply
        self.error = error
        self.readiness = readiness
        self.prompts: list[str] = []
        self.systems: list[str] = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def generate(self, prompt, system="", max_tokens=1024, temperature=0.3) -> ModelResponse:
        self.prompts.append(prompt)
        self.systems.append(system)
        if self.error:
            return ModelResponse(success=False, error=self.error, provider="scripted")
        return ModelResponse(text=self.reply, provider="scripted")

    async def availability(self) -> Availability:
        return self.readiness


def _ollama(handler) -> OllamaProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://ollama.test")
    return OllamaProvider(model="gemma:2b", client=client)


# ─── Language Code Parsing ───────────────────────────────────────

class TestParseLanguageCode:
    @pytest.mark.parametrize("raw, expected", [
        ("fr", "fr"),
        (" EN\n", "en"),
        ("Language: es.", "es"),
        ("und", None),
        ("", None),
        ("I cannot tell", None),
        ("fr is the code", "fr"),
        ("The language is de.", "de"),
        ("The text is in Russian: ru", "ru"),
        ("The language is und", None),
    ])
    def test_parse(self, raw, expected):
        assert parse_language_code(raw) == expected


# ─── Adapters ────────────────────────────────────────────────────

class TestAdapters:
    @pytest.mark.asyncio
    async def test_detector_returns_candidate(self):
        detector = ModelLanguageDetector(ScriptedModel(reply="fr"))
        candidates = await detector.detect("Bonjour le monde")
        assert [c.language for c in candidates] == ["fr"]

    @pytest.mark.asyncio
    async def test_detector_without_code_returns_empty(self):
        detector = ModelLanguageDetector(ScriptedModel(reply="und"))
        assert await detector.detect("???") == []

    @pytest.mark.asyncio
    async def test_detector_failure_raises(self):
        detector = ModelLanguageDetector(ScriptedModel(error="Ollama not running. Start with: ollama serve"))
        with pytest.raises(ProviderFailure, match="Ollama not running"):
            await detector.detect("Hello")

    @pytest.mark.asyncio
    async def test_summarizer_passes_context(self):
        model = ScriptedModel(reply="A short summary.")
        summary = await ModelSummarizer(model).summarize("long text", context="For kids.")
        assert summary == "A short summary."
        assert "Context: For kids." in model.prompts[0]

    @pytest.mark.asyncio
    async def test_translator_prompt_names_languages(self):
        model = ScriptedModel(reply="Hola")
        translator = await ModelTranslatorFactory(model).create("en", "es")
        assert await translator.translate("Hello") == "Hola"
        assert "from English to Spanish" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_translator_unknown_source(self):
        model = ScriptedModel(reply="Hola")
        translator = await ModelTranslatorFactory(model).create("unknown", "es")
        await translator.translate("Hello")
        assert "text to Spanish" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_translator_unavailable_provider(self):
        factory = ModelTranslatorFactory(ScriptedModel(readiness=Availability.UNAVAILABLE))
        with pytest.raises(ProviderFailure):
            await factory.create("en", "es")


# ─── Ollama Provider ─────────────────────────────────────────────

class TestOllamaProvider:
    @pytest.mark.asyncio
    async def test_ready_when_model_pulled(self):
        provider = _ollama(lambda request: httpx.Response(200, json={"models": [{"name": "gemma:2b"}]}))
        assert await provider.availability() is Availability.READY
        await provider.close()

    @pytest.mark.asyncio
    async def test_downloading_when_model_missing(self):
        provider = _ollama(lambda request: httpx.Response(200, json={"models": [{"name": "llama3:8b"}]}))
        assert await provider.availability() is Availability.DOWNLOADING
        await provider.close()

    @pytest.mark.asyncio
    async def test_unavailable_when_server_down(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = _ollama(handler)
        assert await provider.availability() is Availability.UNAVAILABLE
        response = await provider.generate("hi")
        assert not response.success
        assert "ollama serve" in response.error
        await provider.close()

    @pytest.mark.asyncio
    async def test_pull_reports_progress(self):
        lines = [
            {"status": "pulling manifest"},
            {"status": "downloading", "completed": 512, "total": 1024},
            {"status": "downloading", "completed": 1024, "total": 1024},
            {"status": "success"},
        ]

        def handler(request):
            assert request.url.path == "/api/pull"
            assert json.loads(request.content)["model"] == "gemma:2b"
            body = "\n".join(json.dumps(line) for line in lines) + "\n"
            return httpx.Response(200, content=body.encode())

        progress = []
        provider = _ollama(handler)
        await provider.prepare(progress.append)
        assert [(p.loaded, p.total) for p in progress] == [(0, 0), (512, 1024), (1024, 1024), (0, 0)]
        assert progress[1].fraction == 0.5
        await provider.close()

    @pytest.mark.asyncio
    async def test_pull_error_raises(self):
        provider = _ollama(lambda request: httpx.Response(200, content=b'{"error": "model not found"}\n'))
        with pytest.raises(ProviderFailure, match="model not found"):
            await provider.prepare()
        await provider.close()

    @pytest.mark.asyncio
    async def test_generate(self):
        def handler(request):
            payload = json.loads(request.content)
            assert payload["stream"] is False
            return httpx.Response(200, json={"response": " fr \n", "eval_count": 1})

        provider = _ollama(handler)
        response = await provider.generate("detect")
        assert response.success
        assert response.text == "fr"
        await provider.close()


# ─── Groq Provider ───────────────────────────────────────────────

class TestGroqProvider:
    @pytest.mark.asyncio
    async def test_unavailable_without_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        provider = GroqProvider()
        assert await provider.availability() is Availability.UNAVAILABLE
        response = await provider.generate("hi")
        assert not response.success
        assert "GROQ_API_KEY" in response.error
        await provider.close()

    @pytest.mark.asyncio
    async def test_generate_with_key(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "test-key")

        def handler(request):
            assert request.headers["Authorization"] == "Bearer test-key"
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "Hola"}}],
                "usage": {"prompt_tokens": 5, "completion_tokens": 1},
            })

        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            base_url="https://groq.test",
            headers={"Authorization": "Bearer test-key"},
        )
        provider = GroqProvider(client=client)
        assert await provider.availability() is Availability.READY
        response = await provider.generate("translate", system="be brief")
        assert response.text == "Hola"
        assert response.output_tokens == 1
        await provider.close()


# ─── Provider Factory ────────────────────────────────────────────

class TestProviderFactory:
    def test_none_provider(self):
        assert create_provider(ProviderConfig(provider="none")) is None
        assert create_provider(ProviderConfig()) is None

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_provider(ProviderConfig(provider="mystery"))

    def test_builds_configured_provider(self):
        provider = create_provider(ProviderConfig(provider="ollama", model="qwen2.5:0.5b"))
        assert isinstance(provider, OllamaProvider)
        assert provider.model == "qwen2.5:0.5b"

    @pytest.mark.asyncio
    async def test_gateway_without_detection_is_unavailable(self):
        config = TextBenchConfig()
        config.detection.provider = "none"
        gateway = CapabilityGateway.from_config(config)
        assert not await gateway.initialize()
        await gateway.close()

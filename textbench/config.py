"""Configuration management for TextBench.

Loads config from ~/.textbench/config.json, environment variables, or defaults.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

CAPABILITIES = ("detection", "summarization", "translation")


def _default_config_dir() -> Path:
    """Return the default TextBench config directory."""
    return Path.home() / ".textbench"


@dataclass
class ProviderConfig:
    """Which model provider backs a single capability."""

    provider: str = ""   # "ollama", "groq", "anthropic" or "none"
    model: str = ""


@dataclass
class PipelineConfig:
    """Message pipeline policy."""

    default_target_language: str = "en"
    fallback_source_language: str = "en"
    summary_language: str = "en"
    summary_min_length: int = 150
    summary_context: str = "This text is intended for general audience."
    serialize_operations: bool = True


@dataclass
class TextBenchConfig:
    """Root configuration for TextBench."""

    name: str = "TextBench"
    version: str = "0.1.0"

    # Capability providers
    detection: ProviderConfig = field(default_factory=lambda: ProviderConfig(
        provider="ollama", model="gemma:2b",
    ))
    summarization: ProviderConfig = field(default_factory=lambda: ProviderConfig(
        provider="groq", model="llama-3.1-8b-instant",
    ))
    translation: ProviderConfig = field(default_factory=lambda: ProviderConfig(
        provider="groq", model="llama-3.1-8b-instant",
    ))

    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    # Config directory
    config_dir: Path = field(default_factory=_default_config_dir)

    @property
    def log_dir(self) -> Path:
        """Return the log directory."""
        return self.config_dir / "logs"

    def capability(self, name: str) -> ProviderConfig:
        """Return the provider config for a capability by name."""
        if name not in CAPABILITIES:
            raise ValueError(f"Unknown capability '{name}'.")
        return getattr(self, name)


def _load_env_overrides(config: TextBenchConfig) -> None:
    """Override config values from environment variables."""
    if provider := os.getenv("TEXTBENCH_DETECTION_PROVIDER"):
        config.detection.provider = provider
    if provider := os.getenv("TEXTBENCH_SUMMARY_PROVIDER"):
        config.summarization.provider = provider
    if provider := os.getenv("TEXTBENCH_TRANSLATION_PROVIDER"):
        config.translation.provider = provider
    if target := os.getenv("TEXTBENCH_TARGET_LANGUAGE"):
        config.pipeline.default_target_language = target


def _dict_to_config(data: dict) -> TextBenchConfig:
    """Convert a JSON dict to a TextBenchConfig."""
    config = TextBenchConfig()

    app = data.get("app", {})
    config.name = app.get("name", config.name)
    config.version = app.get("version", config.version)

    # Capabilities
    capabilities = data.get("capabilities", {})
    for cap_name in CAPABILITIES:
        if cap_data := capabilities.get(cap_name):
            cap = config.capability(cap_name)
            cap.provider = cap_data.get("provider", cap.provider)
            cap.model = cap_data.get("model", cap.model)

    # Pipeline
    if pipe := data.get("pipeline"):
        p = config.pipeline
        p.default_target_language = pipe.get("default_target_language", p.default_target_language)
        p.fallback_source_language = pipe.get(
            "fallback_source_language", p.fallback_source_language
        )
        p.summary_language = pipe.get("summary_language", p.summary_language)
        p.summary_min_length = int(pipe.get("summary_min_length", p.summary_min_length))
        p.summary_context = pipe.get("summary_context", p.summary_context)
        p.serialize_operations = pipe.get("serialize_operations", p.serialize_operations)

    return config


def _config_to_dict(config: TextBenchConfig) -> dict:
    """Convert a TextBenchConfig to a JSON-serializable dict."""
    p = config.pipeline
    return {
        "app": {
            "name": config.name,
            "version": config.version,
        },
        "capabilities": {
            name: {"provider": cap.provider, "model": cap.model}
            for name, cap in ((n, config.capability(n)) for n in CAPABILITIES)
        },
        "pipeline": {
            "default_target_language": p.default_target_language,
            "fallback_source_language": p.fallback_source_language,
            "summary_language": p.summary_language,
            "summary_min_length": p.summary_min_length,
            "summary_context": p.summary_context,
            "serialize_operations": p.serialize_operations,
        },
    }


def load_config(config_path: Path | None = None) -> TextBenchConfig:
    """Load TextBench configuration from file, env vars, and defaults.

    Priority: env vars > config file > defaults.
    Creates default config file if it doesn't exist.
    """
    config_dir = config_path.parent if config_path else _default_config_dir()
    config_file = config_path or (config_dir / "config.json")

    if config_file.exists():
        with open(config_file) as f:
            data = json.load(f)
        config = _dict_to_config(data)
    else:
        config = TextBenchConfig()

    config.config_dir = config_dir

    config.config_dir.mkdir(parents=True, exist_ok=True)

    # Env overrides are never written back to the file
    if not config_file.exists():
        save_config(config, config_file)

    _load_env_overrides(config)

    return config


def save_config(config: TextBenchConfig, config_path: Path | None = None) -> None:
    """Save configuration to JSON file."""
    config_file = config_path or (config.config_dir / "config.json")
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        json.dump(_config_to_dict(config), f, indent=2)

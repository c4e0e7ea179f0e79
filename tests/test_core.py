"""Tests for TextBench core components."""

from __future__ import annotations

import dataclasses
import json
import logging

import pytest
from click.testing import CliRunner

from textbench.channels.cli import CLIChannel, parse_intent
from textbench.channels.cli import console as cli_console
from textbench.config import TextBenchConfig, _config_to_dict, _dict_to_config, _load_env_overrides, load_config
from textbench.delivery.formatter import format_message
from textbench.languages import SUPPORTED_LANGUAGES, is_supported, language_name
from textbench.main import _log_file_handler, cli
from textbench.memory.message import Message, MessageState
from textbench.memory.store import MessageStore


# ─── Config Tests ────────────────────────────────────────────────

class TestConfig:
    def test_default_config(self):
        config = TextBenchConfig()
        assert config.name == "TextBench"
        assert config.detection.provider == "ollama"
        assert config.pipeline.default_target_language == "en"
        assert config.pipeline.summary_min_length == 150
        assert config.pipeline.serialize_operations is True

    def test_config_roundtrip(self):
        config = TextBenchConfig()
        config.translation.provider = "anthropic"
        config.pipeline.summary_min_length = 200
        restored = _dict_to_config(_config_to_dict(config))
        assert restored.translation.provider == "anthropic"
        assert restored.pipeline.summary_min_length == 200
        assert restored.detection.model == config.detection.model

    def test_unknown_capability(self):
        with pytest.raises(ValueError):
            TextBenchConfig().capability("ocr")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TEXTBENCH_SUMMARY_PROVIDER", "none")
        monkeypatch.setenv("TEXTBENCH_TARGET_LANGUAGE", "es")
        config = TextBenchConfig()
        _load_env_overrides(config)
        assert config.summarization.provider == "none"
        assert config.pipeline.default_target_language == "es"

    def test_load_creates_default_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEXTBENCH_DETECTION_PROVIDER", "groq")
        config_file = tmp_path / "config.json"
        config = load_config(config_file)
        assert config_file.exists()
        assert config.detection.provider == "groq"
        # Env overrides stay out of the saved file
        saved = json.loads(config_file.read_text())
        assert saved["capabilities"]["detection"]["provider"] == "ollama"
        assert config.log_dir == tmp_path / "logs"


# ─── Language Table Tests ────────────────────────────────────────

class TestLanguages:
    def test_table_order(self):
        assert [lang.code for lang in SUPPORTED_LANGUAGES] == ["en", "pt", "es", "ru", "tr", "fr"]

    def test_name_lookup(self):
        assert language_name("fr") == "French"
        assert language_name("ru") == "Russian"

    def test_unknown_code_falls_back(self):
        assert language_name("de") == "de"
        assert language_name("unknown") == "unknown"
        assert not is_supported("de")


# ─── Message Tests ───────────────────────────────────────────────

class TestMessage:
    def test_defaults(self):
        msg = Message(text="Hello")
        assert msg.state is MessageState.IDLE
        assert msg.target_language == "en"
        assert not msg.is_processing
        assert msg.detected_language is None
        assert msg.error is None

    def test_unique_ids(self):
        assert Message(text="a").id != Message(text="a").id

    def test_processing_states(self):
        for state in (MessageState.DETECTING, MessageState.SUMMARIZING, MessageState.TRANSLATING):
            assert Message(text="x", state=state).is_processing
        for state in (MessageState.IDLE, MessageState.DETECTED, MessageState.ERRORED):
            assert not Message(text="x", state=state).is_processing

    def test_frozen(self):
        msg = Message(text="Hello")
        with pytest.raises(dataclasses.FrozenInstanceError):
            msg.summary = "nope"  # type: ignore[misc]

    def test_resting_state(self):
        assert Message(text="x").resting_state is MessageState.IDLE
        assert Message(text="x", detected_language="en").resting_state is MessageState.DETECTED


# ─── Store Tests ─────────────────────────────────────────────────

class TestMessageStore:
    def test_append_keeps_order(self):
        store = MessageStore()
        first = store.append(Message(text="one"))
        second = store.append(Message(text="two"))
        assert [m.id for m in store.snapshot()] == [first.id, second.id]
        assert store.at(1) is first
        assert store.at(2) is second
        assert store.at(3) is None
        assert store.at(0) is None

    def test_duplicate_id_rejected(self):
        store = MessageStore()
        msg = store.append(Message(text="one"))
        with pytest.raises(ValueError):
            store.append(Message(text="again", id=msg.id))

    def test_update_is_copy_on_write(self):
        store = MessageStore()
        a = store.append(Message(text="a"))
        b = store.append(Message(text="b"))
        before = store.snapshot()

        updated = store.update(a.id, lambda m: dataclasses.replace(m, summary="sum"))

        assert updated.summary == "sum"
        assert before[0].summary is None
        assert store.get(a.id).summary == "sum"
        assert store.get(b.id) is b

    def test_update_missing_is_noop(self):
        store = MessageStore()
        store.append(Message(text="a"))
        before = store.snapshot()
        seen = []
        store.subscribe(seen.append)
        assert store.update("missing", lambda m: dataclasses.replace(m, summary="x")) is None
        assert store.snapshot() is before
        assert seen == []

    def test_remove(self):
        store = MessageStore()
        msg = store.append(Message(text="a"))
        assert store.remove(msg.id)
        assert not store.remove(msg.id)
        assert len(store) == 0

    def test_listeners_see_appends_and_updates(self):
        store = MessageStore()
        seen = []
        store.subscribe(seen.append)
        msg = store.append(Message(text="a"))
        store.update(msg.id, lambda m: dataclasses.replace(m, target_language="es"))
        assert [m.target_language for m in seen] == ["en", "es"]


# ─── Delivery Tests ──────────────────────────────────────────────

class TestFormatter:
    def test_detected_language_name(self):
        msg = Message(text="Bonjour le monde", detected_language="fr", state=MessageState.DETECTED)
        out = format_message(msg, 1)
        assert "Detected: French" in out
        assert "/summarize" not in out
        assert "/translate 1" in out

    def test_summary_affordance(self):
        msg = Message(text="x" * 200, detected_language="en", state=MessageState.DETECTED)
        assert "/summarize 2" in format_message(msg, 2, show_summarize=True)

    def test_results_and_error(self):
        msg = Message(
            text="Hello",
            detected_language="en",
            target_language="es",
            translation="Hola",
            summary="Greeting",
            error="Translation failed",
            state=MessageState.ERRORED,
        )
        out = format_message(msg, 1)
        assert "Translation (Spanish)" in out
        assert "Hola" in out
        assert "Greeting" in out
        assert "Translation failed" in out

    def test_processing(self):
        msg = Message(text="Hello", state=MessageState.TRANSLATING)
        out = format_message(msg, 1)
        assert "Processing..." in out
        assert "Actions" not in out


# ─── CLI Tests ───────────────────────────────────────────────────

class TestParseIntent:
    def test_plain_text_is_send(self):
        intent = parse_intent("  Hello world ")
        assert intent.kind == "send"
        assert intent.text == "Hello world"

    def test_positional_commands(self):
        assert parse_intent("/summarize 2").position == 2
        assert parse_intent("/translate 1").kind == "translate"
        target = parse_intent("/target 3 RU")
        assert (target.kind, target.position, target.code) == ("target", 3, "ru")

    def test_simple_commands(self):
        assert parse_intent("/list").kind == "list"
        assert parse_intent("exit").kind == "exit"

    @pytest.mark.parametrize("line", ["/bogus", "/translate", "/target 1", "/summarize x", "/"])
    def test_bad_commands(self, line):
        with pytest.raises(ValueError):
            parse_intent(line)


class TestCLIChannel:
    def test_render_shows_position_and_submission_time(self):
        store = MessageStore()
        store.append(Message(text="Hello"))
        msg = store.append(Message(text="Bonjour", detected_language="fr", state=MessageState.DETECTED))

        with cli_console.capture() as capture:
            CLIChannel(store).render(msg)

        out = capture.get()
        assert "#2" in out
        assert "French" in out
        assert msg.created_at.astimezone().strftime("%H:%M:%S") in out

    def test_processing_messages_are_not_rendered(self):
        store = MessageStore()
        msg = store.append(Message(text="Hello", state=MessageState.DETECTING))
        with cli_console.capture() as capture:
            CLIChannel(store).on_store_change(msg)
        assert capture.get() == ""


class TestLogging:
    def test_log_file_under_log_dir(self, tmp_path):
        log_dir = tmp_path / "logs"
        handler = _log_file_handler(log_dir)
        log = logging.getLogger("textbench.tests")
        log.addHandler(handler)
        try:
            log.warning("Language detector download failed")
        finally:
            log.removeHandler(handler)
            handler.close()

        text = (log_dir / "textbench.log").read_text(encoding="utf-8")
        assert "WARNING textbench.tests: Language detector download failed" in text


class TestCommands:
    def test_languages_command(self):
        result = CliRunner().invoke(cli, ["languages"])
        assert result.exit_code == 0
        assert "Portuguese" in result.output
        assert "tr" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_process_rejects_unsupported_target(self):
        result = CliRunner().invoke(cli, ["process", "Hello", "--translate-to", "xx"])
        assert result.exit_code != 0

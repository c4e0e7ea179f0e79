"""TextBench main entry point — CLI interface and session orchestration.

Commands:
  textbench start                 Start interactive session
  textbench process "text"        One-shot detection (+ optional summary/translation)
  textbench status                Negotiate providers and show their readiness
  textbench languages             List supported target languages
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from textbench import __version__
from textbench.channels.cli import CLIChannel, UserIntent
from textbench.config import CAPABILITIES, TextBenchConfig, load_config
from textbench.delivery.formatter import format_message
from textbench.engine.pipeline import MessagePipeline
from textbench.errors import OperationRejected
from textbench.gateway.providers.base import DownloadProgress
from textbench.gateway.router import CapabilityGateway
from textbench.languages import SUPPORTED_LANGUAGES, is_supported
from textbench.memory.store import MessageStore

console = Console()
logger = logging.getLogger(__name__)

# ─── Session Core ────────────────────────────────────────────────


class TextBenchSession:
    """One workbench session: gateway, message store and pipeline wired together."""

    def __init__(self, config: TextBenchConfig, gateway: CapabilityGateway | None = None) -> None:
        self.config = config
        self.gateway = gateway or CapabilityGateway.from_config(config)
        self.store = MessageStore()
        self.pipeline = MessagePipeline(self.gateway, self.store, config.pipeline)
        self._tasks: set[asyncio.Task] = set()

    async def startup(self, on_progress=None) -> bool:
        """Negotiate capabilities. Returns the apis_available signal."""
        return await self.gateway.initialize(on_progress=on_progress)

    async def shutdown(self) -> None:
        """Stop a pending detector download, let in-flight operations settle, then close providers.

        Detections still waiting on the download settle as per-message errors.
        """
        await self.gateway.cancel_download()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.gateway.close()

    def spawn(self, coro) -> asyncio.Task:
        """Run an operation concurrently with the input loop."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            if isinstance(exc, OperationRejected):
                console.print(f"[yellow]{exc}[/]")
            else:
                logger.error("Operation crashed", exc_info=exc)

    def dispatch(self, intent: UserIntent, channel: CLIChannel) -> None:
        """Route a parsed intent to the pipeline or the channel."""
        if intent.kind == "send":
            message = self.pipeline.submit(intent.text)
            if message is not None:
                self.spawn(self.pipeline.detect(message.id))
            return
        if intent.kind == "list":
            channel.render_all()
            return
        if intent.kind == "languages":
            channel.show_languages()
            return
        if intent.kind == "help":
            channel.show_help()
            return

        message = self.store.at(intent.position)
        if message is None:
            channel.show_error(f"No message #{intent.position}.")
            return

        if intent.kind == "summarize":
            if not self.pipeline.can_summarize(message):
                channel.show_error("Summaries are only offered for long English text.")
                return
            self.spawn(self.pipeline.summarize(message.id))
        elif intent.kind == "translate":
            self.spawn(self.pipeline.translate(message.id))
        elif intent.kind == "target":
            if not is_supported(intent.code):
                channel.show_error(f"Unsupported language '{intent.code}'. See /languages.")
                return
            self.pipeline.change_target_language(message.id, intent.code)
        elif intent.kind == "delete":
            self.store.remove(message.id)
            console.print(f"[dim]Removed message #{intent.position}.[/]")


# ─── CLI Commands ────────────────────────────────────────────────


def _log_file_handler(log_dir: Path) -> logging.Handler:
    """File handler writing textbench.log under log_dir."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / "textbench.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    return handler


def _setup_logging(verbose: bool = False, log_dir: Path | None = None) -> None:
    """Configure structured logging with Rich, plus a log file when log_dir is given."""
    level = logging.DEBUG if verbose else logging.WARNING
    handlers: list[logging.Handler] = [RichHandler(rich_tracebacks=True, show_path=False)]
    if log_dir is not None:
        handlers.append(_log_file_handler(log_dir))
    logging.basicConfig(level=level, format="%(message)s", handlers=handlers)


def _print_progress(progress: DownloadProgress) -> None:
    if progress.total:
        console.print(
            f"[dim]Downloading detector: {progress.loaded}/{progress.total} bytes "
            f"({progress.fraction:.0%})[/]"
        )


@click.group()
@click.version_option(__version__, prog_name="TextBench")
def cli() -> None:
    """TextBench — detect, summarize and translate text with AI providers."""
    pass


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def start(verbose: bool) -> None:
    """Start an interactive TextBench session."""
    config = load_config()
    _setup_logging(verbose, config.log_dir)
    asyncio.run(_run_interactive(config))


@cli.command()
@click.argument("text")
@click.option("--summarize", "want_summary", is_flag=True, help="Also summarize (long English text).")
@click.option("--translate-to", "target", default=None, help="Also translate into this language code.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def process(text: str, want_summary: bool, target: str | None, verbose: bool) -> None:
    """Process a single text and print the result."""
    if target and not is_supported(target):
        raise click.BadParameter(f"unsupported language '{target}'", param_hint="--translate-to")
    config = load_config()
    _setup_logging(verbose, config.log_dir)
    asyncio.run(_run_one_shot(config, text, want_summary, target))


@cli.command()
def status() -> None:
    """Negotiate capability providers and show their readiness."""
    config = load_config()
    console.print("[bold cyan]TextBench Status[/]\n")
    console.print(f"  Version: {__version__}")
    console.print(f"  Config: {config.config_dir}")
    console.print(f"  Logs: {config.log_dir}\n")

    table = Table()
    table.add_column("Capability", style="cyan")
    table.add_column("Provider")
    table.add_column("Model")
    for name in CAPABILITIES:
        cap = config.capability(name)
        table.add_row(name, cap.provider or "none", cap.model or "-")
    console.print(table)

    available, detection = asyncio.run(_negotiate(config))
    console.print(f"\n  Detection readiness: [bold]{detection}[/]")
    if available:
        console.print("[green]Capability providers available ✅[/]")
    else:
        console.print("[red]Capability providers not available ❌[/]")


@cli.command()
def languages() -> None:
    """List the supported target languages."""
    for lang in SUPPORTED_LANGUAGES:
        console.print(f"  [cyan]{lang.code}[/]  {lang.name}")


# ─── Async Runners ───────────────────────────────────────────────


async def _negotiate(config: TextBenchConfig) -> tuple[bool, str]:
    gateway = CapabilityGateway.from_config(config)
    try:
        available = await gateway.initialize()
        return available, gateway.detection.value
    finally:
        await gateway.close()


async def _run_interactive(config: TextBenchConfig) -> None:
    """Run the interactive session loop."""
    session = TextBenchSession(config)
    channel = CLIChannel(session.store, summarize_offered=session.pipeline.can_summarize)

    if not await session.startup(on_progress=_print_progress):
        channel.show_unavailable()
        await session.shutdown()
        return

    session.store.subscribe(channel.on_store_change)
    try:
        async for intent in channel.receive():
            session.dispatch(intent, channel)
    finally:
        await session.shutdown()


async def _run_one_shot(
    config: TextBenchConfig, text: str, want_summary: bool, target: str | None,
) -> None:
    """Detect, then optionally summarize and translate, a single text."""
    session = TextBenchSession(config)

    try:
        if not await session.startup(on_progress=_print_progress):
            CLIChannel(session.store).show_unavailable()
            return

        message = await session.pipeline.send(text)
        if message is None:
            console.print("[yellow]Nothing to process.[/]")
            return

        if want_summary:
            try:
                message = await session.pipeline.summarize(message.id) or message
            except OperationRejected as e:
                console.print(f"[yellow]{e}[/]")
        if target:
            session.pipeline.change_target_language(message.id, target)
            message = await session.pipeline.translate(message.id) or message

        console.print(Markdown(format_message(message, 1, session.pipeline.can_summarize(message))))
    finally:
        await session.shutdown()


# ─── Direct execution ───────────────────────────────────────────

if __name__ == "__main__":
    cli()

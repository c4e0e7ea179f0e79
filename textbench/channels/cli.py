"""CLI channel — interactive terminal input/output using Rich.

Reads user lines, turns them into intents and renders messages from the
store whenever an operation settles.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from textbench import __version__
from textbench.delivery.formatter import format_message
from textbench.languages import SUPPORTED_LANGUAGES
from textbench.memory.message import Message
from textbench.memory.store import MessageStore

console = Console()

_EXIT_WORDS = ("exit", "quit", "/exit", "/quit")

# Commands that take a message position, and how many extra arguments
_POSITIONAL_COMMANDS = {
    "summarize": 0,
    "translate": 0,
    "target": 1,
    "delete": 0,
}

_HELP = """**Commands**

- any text: send it for language detection
- `/summarize N`: summarize message N (long English text only)
- `/translate N`: translate message N into its target language
- `/target N CODE`: change the target language of message N
- `/delete N`: remove message N
- `/list`: show all messages
- `/languages`: show supported languages
- `/exit`: quit"""


@dataclass
class UserIntent:
    """A parsed line of user input."""

    kind: str                 # "send", "summarize", "translate", "target", "delete", ...
    text: str = ""
    position: int = 0
    code: str = ""


def parse_intent(line: str) -> UserIntent:
    """Parse one input line into a UserIntent.

    Raises:
        ValueError: On an unknown command or malformed arguments.
    """
    line = line.strip()
    if line.lower() in _EXIT_WORDS:
        return UserIntent(kind="exit")
    if not line.startswith("/"):
        return UserIntent(kind="send", text=line)

    parts = line[1:].split()
    if not parts:
        raise ValueError("Empty command. Type /help for commands.")
    command, *args = parts
    command = command.lower()

    if command in ("list", "languages", "help"):
        return UserIntent(kind=command)
    if command not in _POSITIONAL_COMMANDS:
        raise ValueError(f"Unknown command '/{command}'. Type /help for commands.")

    expected = 1 + _POSITIONAL_COMMANDS[command]
    if len(args) != expected or not args[0].isdigit():
        usage = f"/{command} N" + (" CODE" if command == "target" else "")
        raise ValueError(f"Usage: {usage}")

    return UserIntent(
        kind=command,
        position=int(args[0]),
        code=args[1].lower() if command == "target" else "",
    )


class CLIChannel:
    """Terminal front end for a session's message store."""

    def __init__(
        self,
        store: MessageStore,
        summarize_offered: Callable[[Message], bool] = lambda m: False,
    ) -> None:
        self.store = store
        self.summarize_offered = summarize_offered

    async def receive(self) -> AsyncIterator[UserIntent]:
        """Read intents from stdin in a loop.

        Input is read in a worker thread so pending operations keep running
        while the prompt waits. Type 'exit' or 'quit' to stop.
        """
        console.print(
            Panel(
                Text.from_markup(
                    f"[bold cyan]TextBench[/] v{__version__}: "
                    "type text to analyze, [bold]/help[/] for commands, [bold]exit[/] to quit."
                ),
                border_style="cyan",
            )
        )
        while True:
            try:
                line = await asyncio.to_thread(console.input, "[bold green]you >[/] ")
            except (EOFError, KeyboardInterrupt):
                console.print("\n[dim]Goodbye![/]")
                break

            if not line.strip():
                continue
            try:
                intent = parse_intent(line)
            except ValueError as e:
                self.show_error(str(e))
                continue

            if intent.kind == "exit":
                console.print("[dim]Goodbye![/]")
                break
            yield intent

    def on_store_change(self, message: Message) -> None:
        """Store listener: re-render a message once it is no longer processing."""
        if not message.is_processing:
            self.render(message)

    def render(self, message: Message) -> None:
        """Print one message as a panel."""
        snapshot = self.store.snapshot()
        position = next((i for i, m in enumerate(snapshot, start=1) if m.id == message.id), 0)
        if position == 0:
            return
        console.print(
            Panel(
                Markdown(format_message(message, position, self.summarize_offered(message))),
                title=f"[bold cyan]#{position}[/]",
                subtitle=f"[dim]{message.created_at.astimezone():%H:%M:%S}[/]",
                border_style="red" if message.error else "blue",
                padding=(0, 1),
            )
        )

    def render_all(self) -> None:
        if not len(self.store):
            console.print("[dim]No messages yet.[/]")
        for message in self.store.snapshot():
            self.render(message)

    def show_languages(self) -> None:
        table = Table(title="Supported languages")
        table.add_column("Code", style="cyan")
        table.add_column("Name")
        for lang in SUPPORTED_LANGUAGES:
            table.add_row(lang.code, lang.name)
        console.print(table)

    def show_help(self) -> None:
        console.print(Markdown(_HELP))

    def show_error(self, text: str) -> None:
        console.print(f"[red]{text}[/]")

    def show_unavailable(self) -> None:
        """Fallback notice when the capability providers cannot be used."""
        console.print(
            Panel(
                Text.from_markup(
                    "[bold red]AI capability providers not available[/]\n\n"
                    "Check the providers in ~/.textbench/config.json and run "
                    "[bold]textbench status[/] for details."
                ),
                border_style="red",
            )
        )

"""Delivery formatter — render a message as Markdown for the terminal."""

from __future__ import annotations

from textbench.languages import language_name
from textbench.memory.message import Message


def format_message(message: Message, position: int, show_summarize: bool = False) -> str:
    """Format one message with its enrichment results and available actions.

    Args:
        message: The message to render.
        position: 1-based position in the store, used in command hints.
        show_summarize: Whether the summarize affordance is offered.

    Returns:
        Markdown text.
    """
    lines = [message.text, ""]

    if message.detected_language:
        lines.append(f"*Detected: {language_name(message.detected_language)}*")
    if message.error:
        lines.append(f"**Error:** {message.error}")
    if message.summary:
        lines += ["", "**Summary:**", message.summary]
    if message.translation:
        lines += [
            "",
            f"**Translation ({language_name(message.target_language)}):**",
            message.translation,
        ]

    lines.append("")
    if message.is_processing:
        lines.append("_Processing..._")
    else:
        actions = []
        if show_summarize:
            actions.append(f"`/summarize {position}`")
        actions.append(f"`/translate {position}` → {language_name(message.target_language)}")
        actions.append(f"`/target {position} <code>`")
        lines.append("Actions: " + " · ".join(actions))

    return "\n".join(lines).strip()

"""In-memory message store — ordered, append-only, copy-on-write.

Every update replaces the whole snapshot with a new tuple in which only the
targeted message differs. Readers holding an older snapshot never see a
half-applied change, and concurrent updates to different messages cannot
clobber each other.
"""

from __future__ import annotations

import logging
from typing import Callable

from textbench.memory.message import Message

logger = logging.getLogger(__name__)

StoreListener = Callable[[Message], None]


class MessageStore:
    """Holds the messages of one session, in submission order.

    Messages live only in process memory.
    """

    def __init__(self) -> None:
        self._messages: tuple[Message, ...] = ()
        self._listeners: list[StoreListener] = []

    def __len__(self) -> int:
        return len(self._messages)

    def snapshot(self) -> tuple[Message, ...]:
        """Return the current ordered, read-only view."""
        return self._messages

    def get(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        return next((m for m in self._messages if m.id == message_id), None)

    def at(self, position: int) -> Message | None:
        """Get a message by its 1-based position, as shown to the user."""
        if 1 <= position <= len(self._messages):
            return self._messages[position - 1]
        return None

    def append(self, message: Message) -> Message:
        """Append a new message. IDs must be unique for the life of the store."""
        if self.get(message.id) is not None:
            raise ValueError(f"Duplicate message id '{message.id}'")
        self._messages = self._messages + (message,)
        self._notify(message)
        return message

    def update(self, message_id: str, change: Callable[[Message], Message]) -> Message | None:
        """Apply change to one message and publish a new snapshot.

        Returns the updated message, or None when the id is not present
        (the change is silently dropped).
        """
        updated: Message | None = None
        messages = []
        for message in self._messages:
            if message.id == message_id:
                updated = change(message)
                messages.append(updated)
            else:
                messages.append(message)

        if updated is None:
            logger.debug(f"Dropped update for missing message {message_id}")
            return None

        self._messages = tuple(messages)
        self._notify(updated)
        return updated

    def remove(self, message_id: str) -> bool:
        """Remove a message. Only the presentation layer deletes messages."""
        remaining = tuple(m for m in self._messages if m.id != message_id)
        if len(remaining) == len(self._messages):
            return False
        self._messages = remaining
        return True

    def subscribe(self, listener: StoreListener) -> None:
        """Register a callback invoked with each appended or updated message."""
        self._listeners.append(listener)

    def _notify(self, message: Message) -> None:
        for listener in self._listeners:
            listener(message)

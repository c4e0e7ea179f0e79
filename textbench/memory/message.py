"""Message record — the entity every pipeline stage reads and rewrites.

Messages are frozen; every change produces a new record through
dataclasses.replace, so the store can swap whole snapshots.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class MessageState(str, Enum):
    """Where a message is in its processing lifecycle."""

    IDLE = "idle"
    DETECTING = "detecting"
    DETECTED = "detected"
    SUMMARIZING = "summarizing"
    TRANSLATING = "translating"
    ERRORED = "errored"


PROCESSING_STATES = frozenset({
    MessageState.DETECTING,
    MessageState.SUMMARIZING,
    MessageState.TRANSLATING,
})


@dataclass(frozen=True)
class Message:
    """A submitted text entry and everything learned about it."""

    text: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    target_language: str = "en"
    state: MessageState = MessageState.IDLE
    detected_language: str | None = None
    summary: str | None = None
    translation: str | None = None
    error: str | None = None                        # Most recent failure only
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_processing(self) -> bool:
        """True while a detection, summarization or translation is outstanding."""
        return self.state in PROCESSING_STATES

    @property
    def resting_state(self) -> MessageState:
        """The state a message returns to after a successful operation."""
        return MessageState.DETECTED if self.detected_language else MessageState.IDLE

"""Message pipeline — drives each message through detection, summarization and translation.

State machine per message:

    submit ─▶ DETECTING ─detect─▶ DETECTED | ERRORED
    IDLE | DETECTED | ERRORED ─▶ SUMMARIZING | TRANSLATING ─▶ DETECTED | IDLE | ERRORED

Every gateway failure is caught here and stored on the message; nothing
from a single provider call propagates further.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from textbench.config import PipelineConfig
from textbench.errors import OperationRejected, ProviderFailure
from textbench.gateway.router import CapabilityGateway
from textbench.memory.message import Message, MessageState
from textbench.memory.store import MessageStore

logger = logging.getLogger(__name__)


def summarize_offered(message: Message, language: str = "en", min_length: int = 150) -> bool:
    """Summaries are only offered for long-enough text in the summary language."""
    return message.detected_language == language and len(message.text) >= min_length


class MessagePipeline:
    """Turns user intents into gateway calls and writes the outcomes to the store.

    With ``serialize_operations`` enabled, a message accepts one outstanding
    operation at a time and further requests are rejected. Disabled, two
    overlapping operations on one message both apply their writes and the
    last one to resolve wins.
    """

    def __init__(
        self,
        gateway: CapabilityGateway,
        store: MessageStore | None = None,
        settings: PipelineConfig | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = store or MessageStore()
        self.settings = settings or PipelineConfig()
        self._detecting: set[str] = set()

    def can_summarize(self, message: Message) -> bool:
        """Whether the summarize affordance should be shown for this message."""
        return summarize_offered(
            message,
            language=self.settings.summary_language,
            min_length=self.settings.summary_min_length,
        )

    # ─── Intents ─────────────────────────────────────────────────

    def submit(self, text: str) -> Message | None:
        """Create and append a message already marked DETECTING.

        Blank input is ignored and returns None.
        """
        text = text.strip()
        if not text:
            return None
        message = Message(
            text=text,
            target_language=self.settings.default_target_language,
            state=MessageState.DETECTING,
        )
        return self.store.append(message)

    async def send(self, text: str) -> Message | None:
        """Submit text and run language detection on it."""
        message = self.submit(text)
        if message is None:
            return None
        return await self.detect(message.id)

    async def detect(self, message_id: str) -> Message | None:
        """Run detection for a message created by submit().

        Only a message still in DETECTING with no detection already running
        is accepted, so detection happens once per message.
        """
        message = self.store.get(message_id)
        if message is None:
            return None
        if message.state is not MessageState.DETECTING or message_id in self._detecting:
            raise OperationRejected("Language detection has already started for this message.")

        self._detecting.add(message_id)
        try:
            result = await self.gateway.detect_language(message.text)
        except ProviderFailure as e:
            logger.warning(f"Detection failed for {message_id}: {e}")
            return self._fail(message_id, str(e) or "Language detection failed")
        finally:
            self._detecting.discard(message_id)

        logger.debug(f"Detected {result.language} for {message_id}")
        return self.store.update(message_id, lambda m: replace(
            m,
            detected_language=result.language,
            state=MessageState.DETECTED,
            error=None,
        ))

    async def summarize(self, message_id: str) -> Message | None:
        """Summarize a message. Earlier summaries survive a failed attempt."""
        message = self.store.get(message_id)
        if message is None:
            return None
        if not self.can_summarize(message):
            raise OperationRejected(
                f"Summaries are only offered for {self.settings.summary_language} text "
                f"of at least {self.settings.summary_min_length} characters."
            )
        if not self.gateway.can_summarize:
            logger.info("No summarizer configured; summarize request ignored")
            return message

        self._begin(message, MessageState.SUMMARIZING)
        try:
            result = await self.gateway.summarize(message.text, context=self.settings.summary_context)
        except ProviderFailure as e:
            logger.warning(f"Summarization failed for {message_id}: {e}")
            return self._fail(message_id, str(e) or "Summarization failed")

        if result is None:
            return self.store.update(message_id, lambda m: replace(m, state=m.resting_state))
        return self.store.update(message_id, lambda m: replace(
            m, summary=result.summary, state=m.resting_state,
        ))

    async def translate(self, message_id: str) -> Message | None:
        """Translate a message into its current target language.

        The language pair is captured when the call is issued; changing the
        target while it is in flight does not affect the written result.
        """
        message = self.store.get(message_id)
        if message is None:
            return None

        self._begin(message, MessageState.TRANSLATING)
        try:
            result = await self.gateway.translate(
                message.text,
                source_language=message.detected_language or self.settings.fallback_source_language,
                target_language=message.target_language,
            )
        except ProviderFailure as e:
            logger.warning(f"Translation failed for {message_id}: {e}")
            return self._fail(message_id, str(e) or "Translation failed")

        return self.store.update(message_id, lambda m: replace(
            m, translation=result.translation, state=m.resting_state,
        ))

    def change_target_language(self, message_id: str, code: str) -> Message | None:
        """Set the target language. Existing results and errors are kept as they are."""
        return self.store.update(message_id, lambda m: replace(m, target_language=code))

    # ─── Transitions ─────────────────────────────────────────────

    def _begin(self, message: Message, state: MessageState) -> None:
        """Enter an operation state, clearing the previous error."""
        if self.settings.serialize_operations and message.is_processing:
            raise OperationRejected("This message is still being processed.")
        self.store.update(message.id, lambda m: replace(m, state=state, error=None))

    def _fail(self, message_id: str, error: str) -> Message | None:
        return self.store.update(message_id, lambda m: replace(
            m, error=error, state=MessageState.ERRORED,
        ))

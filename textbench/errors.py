"""Error taxonomy shared by the gateway, the pipeline and the CLI."""

from __future__ import annotations


class TextBenchError(Exception):
    """Base class for all TextBench errors."""


class ProviderFailure(TextBenchError):
    """A capability provider call was rejected.

    The message is human-readable and is shown to the user as the
    message's error text.
    """


class CapabilityUnavailable(ProviderFailure):
    """A required capability negotiated to ``unavailable``."""


class OperationRejected(TextBenchError):
    """The pipeline refused a user intent (message busy, summary not offered)."""

"""Exception hierarchy for the relay core."""

from __future__ import annotations

from .models import RejectionReason


class RelayError(RuntimeError):
    """Base class for errors raised by pizero-relay."""


class FrameRejected(RelayError):
    """Raised when an inbound frame does not decode to a command."""

    def __init__(self, reason: RejectionReason, frame: bytes, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.frame = frame


class InvalidIndexError(RelayError):
    """Raised when a line index outside the bank is addressed."""

    def __init__(self, index: int, channel_count: int) -> None:
        super().__init__(
            f"Line index {index} out of range (bank has {channel_count} lines)"
        )
        self.index = index
        self.channel_count = channel_count


class GpioSetupError(RelayError):
    """Raised when output lines cannot be claimed."""

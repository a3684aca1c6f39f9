"""Core primitives for pizero-relay."""

from .bank import OutputBank
from .decoder import decode_frame, format_frame
from .dispatcher import CommandDispatcher
from .errors import FrameRejected, GpioSetupError, InvalidIndexError, RelayError
from .models import Command, Level, OutputPolarity, RejectionReason, RelayState
from .protocols import OutputDriver

__all__ = [
    "Command",
    "CommandDispatcher",
    "FrameRejected",
    "GpioSetupError",
    "InvalidIndexError",
    "Level",
    "OutputBank",
    "OutputDriver",
    "OutputPolarity",
    "RejectionReason",
    "RelayError",
    "RelayState",
    "decode_frame",
    "format_frame",
]

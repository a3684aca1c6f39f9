"""Decoding of the 2-byte relay command frame.

Wire layout::

    offset 0  channel number, 1-16
    offset 1  relay state, 0 = de-energise, 1-255 = energise

Anything that is not exactly two bytes long is rejected outright.
"""

from __future__ import annotations

from typing import Iterable, Union

from .. import constants
from .errors import FrameRejected
from .models import Command, RejectionReason, RelayState

Frame = Union[bytes, bytearray, memoryview, Iterable[int]]


def frame_bytes(frame: Frame) -> bytes:
    """Copy ``frame`` into ``bytes``.

    Integers are refused rather than read as a buffer length.

    Raises:
        TypeError: If ``frame`` is an integer or not bytes-like.
        ValueError: If an element is outside 0-255.
    """

    if isinstance(frame, int):
        raise TypeError(f"cannot read a frame from {type(frame).__name__}")
    return bytes(frame)


def decode_frame(frame: Frame) -> Command:
    """Decode ``frame`` into a :class:`Command`.

    The input is copied, never modified.

    Raises:
        FrameRejected: If the frame has the wrong length or addresses a
            channel outside 1-16.
    """

    raw = frame_bytes(frame)

    if len(raw) != constants.FRAME_LENGTH:
        raise FrameRejected(
            RejectionReason.BAD_LENGTH,
            raw,
            f"Expected {constants.FRAME_LENGTH} bytes, got {len(raw)}",
        )

    channel_byte, state_byte = raw[0], raw[1]

    if not 1 <= channel_byte <= constants.CHANNEL_COUNT:
        raise FrameRejected(
            RejectionReason.CHANNEL_OUT_OF_RANGE,
            raw,
            f"Channel {channel_byte} outside 1-{constants.CHANNEL_COUNT}",
        )

    return Command(channel=channel_byte - 1, state=RelayState.from_wire(state_byte))


def format_frame(frame: bytes) -> str:
    """Render raw bytes the way the console trace shows them: ``[1] [0]``."""

    return " ".join(f"[{value}]" for value in frame)

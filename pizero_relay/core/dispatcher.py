"""Dispatch of inbound frames onto the output bank."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .bank import OutputBank
from .decoder import Frame, decode_frame, format_frame, frame_bytes
from .errors import FrameRejected, InvalidIndexError
from .models import Command

LOGGER = logging.getLogger(__name__)


class CommandDispatcher:
    """Applies decoded commands to an :class:`OutputBank`.

    ``dispatch`` never raises for a bad frame: rejected frames are logged
    and dropped without touching the bank. Calls from different threads
    are serialised so each frame is decoded and applied before the next
    one starts.
    """

    def __init__(self, bank: OutputBank) -> None:
        self._bank = bank
        self._lock = threading.Lock()
        self._accepted = 0
        self._rejected = 0

    @property
    def bank(self) -> OutputBank:
        return self._bank

    @property
    def accepted_count(self) -> int:
        return self._accepted

    @property
    def rejected_count(self) -> int:
        return self._rejected

    def dispatch(self, frame: Frame) -> Optional[Command]:
        """Decode ``frame`` and apply it; return the applied command or None."""

        with self._lock:
            try:
                raw = frame_bytes(frame)
            except (TypeError, ValueError) as exc:
                self._rejected += 1
                LOGGER.warning("Rejected unreadable frame: %s", exc)
                return None

            LOGGER.debug("Frame received: %s", format_frame(raw))

            try:
                command = decode_frame(raw)
            except FrameRejected as exc:
                self._rejected += 1
                LOGGER.warning(
                    "Rejected frame %s (%s): %s",
                    format_frame(exc.frame),
                    exc.reason.value,
                    exc,
                )
                return None

            try:
                self._bank.set_channel(command.channel, command.state)
            except InvalidIndexError as exc:
                self._rejected += 1
                LOGGER.error(
                    "Dropped command for channel %d: %s", command.channel + 1, exc
                )
                return None

            self._accepted += 1
            LOGGER.info(
                "Relay %d %s", command.channel + 1, command.state.value.replace("_", "-")
            )
            return command

"""The bank of relay output lines."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from .errors import InvalidIndexError
from .models import Level, OutputPolarity, RelayState
from .protocols import OutputDriver

LOGGER = logging.getLogger(__name__)


class OutputBank:
    """Owns the relay output lines and the level each was last driven to.

    Every line is configured as an output and driven to the de-energised
    level while the bank is constructed, so a bank that exists is always
    in a known, all-relays-off state before any command reaches it.

    Usage:
        bank = OutputBank(driver, polarity=OutputPolarity.ACTIVE_LOW)
        bank.set_channel(3, RelayState.ENERGIZED)
        bank.state(3)  # RelayState.ENERGIZED
    """

    def __init__(
        self,
        driver: OutputDriver,
        *,
        polarity: OutputPolarity = OutputPolarity.ACTIVE_LOW,
        channel_count: Optional[int] = None,
    ) -> None:
        count = driver.line_count if channel_count is None else channel_count
        if count < 1 or count > driver.line_count:
            raise ValueError(
                f"channel_count must be between 1 and {driver.line_count}, got {count}"
            )

        self._driver = driver
        self._polarity = polarity
        self._channel_count = count
        self._lock = threading.RLock()
        self._levels: List[Level] = []

        self._initialise()

    @property
    def channel_count(self) -> int:
        return self._channel_count

    @property
    def polarity(self) -> OutputPolarity:
        return self._polarity

    def _initialise(self) -> None:
        safe_level = self._polarity.level_for(RelayState.DE_ENERGIZED)
        with self._lock:
            for line in range(self._channel_count):
                self._driver.configure_as_output(line, safe_level)
                self._driver.write_level(line, safe_level)
                self._levels.append(safe_level)
        LOGGER.info(
            "Initialised %d output lines to %s (%s)",
            self._channel_count,
            safe_level.value,
            self._polarity.value,
        )

    def set_channel(self, index: int, state: RelayState) -> None:
        """Drive line ``index`` to the level for ``state``.

        Raises:
            InvalidIndexError: If ``index`` is not a line of this bank.
        """

        if not 0 <= index < self._channel_count:
            raise InvalidIndexError(index, self._channel_count)

        level = self._polarity.level_for(state)
        with self._lock:
            self._driver.write_level(index, level)
            self._levels[index] = level
        LOGGER.debug("Line %d -> %s (%s)", index, level.value, state.value)

    def level(self, index: int) -> Level:
        if not 0 <= index < self._channel_count:
            raise InvalidIndexError(index, self._channel_count)
        with self._lock:
            return self._levels[index]

    def state(self, index: int) -> RelayState:
        return self._polarity.state_for(self.level(index))

    def levels(self) -> List[Level]:
        with self._lock:
            return list(self._levels)

    def states(self) -> List[RelayState]:
        return [self._polarity.state_for(level) for level in self.levels()]

    def __repr__(self) -> str:
        energized = [
            index + 1
            for index, state in enumerate(self.states())
            if state is RelayState.ENERGIZED
        ]
        return f"OutputBank(lines={self._channel_count}, energized={energized})"

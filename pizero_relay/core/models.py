"""Domain models for relay commands and output lines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RelayState(str, Enum):
    """Logical relay state."""

    ENERGIZED = "energized"
    DE_ENERGIZED = "de_energized"

    @classmethod
    def from_wire(cls, value: int) -> "RelayState":
        # Only an exact zero switches the relay off; every other byte is "on".
        return cls.DE_ENERGIZED if value == 0 else cls.ENERGIZED


class Level(str, Enum):
    """Physical level of an output line."""

    HIGH = "high"
    LOW = "low"


class OutputPolarity(str, Enum):
    """Wiring of the relay driver stage.

    Most relay boards sold for the Pi are active-low: pulling the input LOW
    energises the coil. ``ACTIVE_HIGH`` exists for boards wired the other
    way round.
    """

    ACTIVE_LOW = "active_low"
    ACTIVE_HIGH = "active_high"

    def level_for(self, state: RelayState) -> Level:
        energized = state is RelayState.ENERGIZED
        if self is OutputPolarity.ACTIVE_LOW:
            return Level.LOW if energized else Level.HIGH
        return Level.HIGH if energized else Level.LOW

    def state_for(self, level: Level) -> RelayState:
        if self is OutputPolarity.ACTIVE_LOW:
            active = level is Level.LOW
        else:
            active = level is Level.HIGH
        return RelayState.ENERGIZED if active else RelayState.DE_ENERGIZED


class RejectionReason(str, Enum):
    """Why an inbound frame was dropped."""

    BAD_LENGTH = "bad_length"
    CHANNEL_OUT_OF_RANGE = "channel_out_of_range"


@dataclass(frozen=True, slots=True)
class Command:
    """A decoded relay command.

    ``channel`` is the 0-based line index, not the 1-based wire value.
    """

    channel: int
    state: RelayState

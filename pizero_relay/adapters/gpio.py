"""GPIO adapter encapsulating gpiozero output devices."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from gpiozero import DigitalOutputDevice, GPIOZeroError
from gpiozero.pins.mock import MockFactory

from ..core.errors import GpioSetupError
from ..core.models import Level

LOGGER = logging.getLogger(__name__)


class GpioZeroDriver:
    """Output driver mapping 0-based line indices onto BCM pins.

    Each claimed line is a ``DigitalOutputDevice`` with ``active_high=True``
    so that ``on()`` always means electrically HIGH; relay polarity is
    decided by the bank, not here.
    """

    def __init__(self, pins: Sequence[int], *, pin_factory=None) -> None:
        if not pins:
            raise GpioSetupError("At least one output pin is required")
        self._pins = tuple(pins)
        self._pin_factory = pin_factory
        self._devices: Dict[int, DigitalOutputDevice] = {}

    @classmethod
    def simulated(cls, pins: Sequence[int]) -> "GpioZeroDriver":
        """Build a driver backed by gpiozero's mock pin factory."""

        LOGGER.info("GPIO simulation enabled; no hardware pins will be driven")
        return cls(pins, pin_factory=MockFactory())

    @property
    def line_count(self) -> int:
        return len(self._pins)

    @property
    def pins(self) -> tuple[int, ...]:
        return self._pins

    def pin_for(self, line: int) -> int:
        if not 0 <= line < len(self._pins):
            raise GpioSetupError(f"No pin mapped for line {line}")
        return self._pins[line]

    def configure_as_output(self, line: int, initial: Level) -> None:
        pin = self.pin_for(line)
        existing = self._devices.pop(line, None)
        if existing is not None:
            existing.close()

        try:
            device = DigitalOutputDevice(
                pin,
                active_high=True,
                initial_value=initial is Level.HIGH,
                pin_factory=self._pin_factory,
            )
        except GPIOZeroError as exc:
            raise GpioSetupError(
                f"Unable to claim GPIO{pin} for line {line}: {exc}"
            ) from exc

        self._devices[line] = device
        LOGGER.debug("Line %d mapped to GPIO%d (initial %s)", line, pin, initial.value)

    def write_level(self, line: int, level: Level) -> None:
        device = self._device(line)
        if level is Level.HIGH:
            device.on()
        else:
            device.off()

    def read_level(self, line: int) -> Level:
        return Level.HIGH if self._device(line).value else Level.LOW

    def close(self) -> None:
        for line, device in list(self._devices.items()):
            try:
                device.close()
            except GPIOZeroError:
                LOGGER.debug("Error releasing line %d", line, exc_info=True)
        self._devices.clear()

    def _device(self, line: int) -> DigitalOutputDevice:
        device: Optional[DigitalOutputDevice] = self._devices.get(line)
        if device is None:
            raise GpioSetupError(f"Line {line} has not been configured as an output")
        return device

import pytest

from gpiozero.pins.mock import MockFactory

from pizero_relay import constants
from pizero_relay.adapters.gpio import GpioZeroDriver
from pizero_relay.core import CommandDispatcher, Level, OutputBank


class RecordingDriver:
    """In-memory output driver recording every call it receives."""

    def __init__(self, line_count: int = constants.CHANNEL_COUNT) -> None:
        self._line_count = line_count
        self.configured: dict[int, Level] = {}
        self.levels: dict[int, Level] = {}
        self.writes: list[tuple[int, Level]] = []
        self.closed = False

    @property
    def line_count(self) -> int:
        return self._line_count

    def configure_as_output(self, line: int, initial: Level) -> None:
        self.configured[line] = initial
        self.levels[line] = initial

    def write_level(self, line: int, level: Level) -> None:
        if line not in self.configured:
            raise AssertionError(f"write to unconfigured line {line}")
        self.writes.append((line, level))
        self.levels[line] = level

    def read_level(self, line: int) -> Level:
        return self.levels[line]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_driver() -> RecordingDriver:
    return RecordingDriver()


@pytest.fixture
def mock_factory():
    factory = MockFactory()
    yield factory
    factory.close()


@pytest.fixture
def gpio_driver(mock_factory):
    driver = GpioZeroDriver(constants.DEFAULT_PINS, pin_factory=mock_factory)
    yield driver
    driver.close()


@pytest.fixture
def bank(recording_driver) -> OutputBank:
    return OutputBank(recording_driver)


@pytest.fixture
def dispatcher(bank) -> CommandDispatcher:
    return CommandDispatcher(bank)

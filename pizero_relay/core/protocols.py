"""Protocol definitions for output drivers."""

from __future__ import annotations

from typing import Protocol

from .models import Level


class OutputDriver(Protocol):
    """Minimal contract for hardware (or simulated) digital outputs.

    Lines are addressed by 0-based index; the driver owns the mapping from
    index to physical pin.
    """

    @property
    def line_count(self) -> int:
        """Number of lines the driver can address."""
        ...

    def configure_as_output(self, line: int, initial: Level) -> None:
        """Claim ``line`` as an output, driving it to ``initial`` immediately."""
        ...

    def write_level(self, line: int, level: Level) -> None:
        """Drive ``line`` to ``level``."""
        ...

    def read_level(self, line: int) -> Level:
        """Return the level ``line`` is currently driven to."""
        ...

    def close(self) -> None:
        """Release any claimed lines."""
        ...

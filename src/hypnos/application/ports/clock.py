"""Clock port - current time in epoch seconds."""

from typing import Protocol


class Clock(Protocol):
    """Port for reading the current time."""

    def now(self) -> int: ...

"""Stream cursor repository port."""

from typing import Protocol


class CursorRepository(Protocol):
    """Port for the last applied sequence per stream (0 when nothing applied)."""

    async def get(self, stream: str) -> int: ...

    async def advance(self, stream: str, sequence: int) -> None: ...

"""Dead letter repository port."""

from typing import Protocol

from hypnos.domain.entities import DeadLetter
from hypnos.domain.value_objects import DeadLetterStatus


class DeadLetterRepository(Protocol):
    """Port for parked, undecodable event records."""

    async def get(self, stream: str, sequence: int) -> DeadLetter | None: ...

    async def park(self, letter: DeadLetter) -> bool: ...

    async def update(self, letter: DeadLetter) -> None: ...

    async def list(
        self, stream: str, status: DeadLetterStatus | None = None
    ) -> list[DeadLetter]: ...

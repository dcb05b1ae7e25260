"""Event log port - append-only, ordered stream of ledger events."""

from dataclasses import dataclass
from typing import Any, Protocol

from hypnos.domain.events import EventEnvelope


@dataclass(frozen=True)
class RawEventRecord:
    """Record as stored. ``data`` may be unparseable; decoding happens downstream."""

    sequence: int
    data: str | dict[str, Any]


class EventLog(Protocol):
    """Port for the ledger's event stream. Sequences start at 1 and never repeat."""

    async def append(self, envelopes: list[EventEnvelope]) -> list[EventEnvelope]: ...

    async def append_raw(self, data: str | dict[str, Any]) -> int: ...

    async def read(self, after: int, limit: int) -> list[RawEventRecord]: ...

    async def last_sequence(self) -> int: ...

    async def wait_for_new(self, after: int, timeout: float) -> bool: ...

"""In-memory event log."""

import asyncio
from dataclasses import replace
from typing import Any

from hypnos.application.dto.event_record import encode_envelope
from hypnos.application.ports import RawEventRecord
from hypnos.domain.events import EventEnvelope


class InMemoryEventLog:
    """Append-only list of encoded records for a single process."""

    def __init__(self) -> None:
        self._records: list[str | dict[str, Any]] = []
        self._changed = asyncio.Condition()

    async def append(self, envelopes: list[EventEnvelope]) -> list[EventEnvelope]:
        """Append envelopes in order, assigning sequences."""
        appended = []
        for envelope in envelopes:
            sequenced = replace(envelope, sequence=len(self._records) + 1)
            self._records.append(encode_envelope(sequenced))
            appended.append(sequenced)
        await self._notify()
        return appended

    async def append_raw(self, data: str | dict[str, Any]) -> int:
        """Append a record as-is (imports and replays). Returns its sequence."""
        self._records.append(data)
        await self._notify()
        return len(self._records)

    async def read(self, after: int, limit: int) -> list[RawEventRecord]:
        chunk = self._records[after : after + limit]
        return [RawEventRecord(sequence=after + i + 1, data=data) for i, data in enumerate(chunk)]

    async def last_sequence(self) -> int:
        return len(self._records)

    async def wait_for_new(self, after: int, timeout: float) -> bool:
        """Wait until a record beyond ``after`` exists or the timeout passes."""
        async with self._changed:
            try:
                await asyncio.wait_for(
                    self._changed.wait_for(lambda: len(self._records) > after), timeout
                )
            except TimeoutError:
                return False
        return True

    async def _notify(self) -> None:
        async with self._changed:
            self._changed.notify_all()

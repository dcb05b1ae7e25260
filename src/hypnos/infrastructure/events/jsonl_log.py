"""JSON-lines file event log - lets the reconciler run in another process."""

import asyncio
import json
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from hypnos.application.dto.event_record import encode_envelope
from hypnos.application.ports import RawEventRecord
from hypnos.domain.events import EventEnvelope


class JsonlEventLog:
    """One record per line; the sequence is the 1-based line number.

    Lines are returned verbatim so a corrupt line reaches the reconciler
    (and its dead-letter path) instead of breaking the read.
    """

    def __init__(self, path: str | Path, poll_interval: float = 0.5) -> None:
        self._path = Path(path)
        self._poll_interval = poll_interval
        self._lock = asyncio.Lock()
        self._count: int | None = None

    async def append(self, envelopes: list[EventEnvelope]) -> list[EventEnvelope]:
        async with self._lock:
            start = await self._line_count()
            sequenced = [
                replace(envelope, sequence=start + i + 1) for i, envelope in enumerate(envelopes)
            ]
            lines = [json.dumps(encode_envelope(e), separators=(",", ":")) for e in sequenced]
            await self._write_lines(lines)
            self._count = start + len(lines)
        return sequenced

    async def append_raw(self, data: str | dict[str, Any]) -> int:
        line = data if isinstance(data, str) else json.dumps(data, separators=(",", ":"))
        if "\n" in line:
            raise ValueError("Raw record must be a single line")
        async with self._lock:
            start = await self._line_count()
            await self._write_lines([line])
            self._count = start + 1
        return start + 1

    async def read(self, after: int, limit: int) -> list[RawEventRecord]:
        if not await aiofiles.os.path.exists(self._path):
            return []
        records: list[RawEventRecord] = []
        index = 0
        async with aiofiles.open(self._path, "r", encoding="utf-8", errors="replace") as f:
            async for line in f:
                index += 1
                if index <= after:
                    continue
                # Partial trailing line: the writer has not finished it yet
                if len(records) >= limit or not line.endswith("\n"):
                    break
                records.append(RawEventRecord(sequence=index, data=line.rstrip("\n")))
        return records

    async def last_sequence(self) -> int:
        if not await aiofiles.os.path.exists(self._path):
            return 0
        count = 0
        async with aiofiles.open(self._path, "rb") as f:
            async for line in f:
                if line.endswith(b"\n"):
                    count += 1
        return count

    async def wait_for_new(self, after: int, timeout: float) -> bool:
        """Poll the file until it grows beyond ``after`` lines or the timeout passes."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if await self.last_sequence() > after:
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(self._poll_interval, remaining))

    async def _line_count(self) -> int:
        # Another process may append; only this instance's writes are cached.
        if self._count is None:
            self._count = await self.last_sequence()
        return self._count

    async def _write_lines(self, lines: list[str]) -> None:
        await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
        async with aiofiles.open(self._path, "a", encoding="utf-8") as f:
            await f.write("".join(line + "\n" for line in lines))
            await f.flush()
            await asyncio.to_thread(os.fsync, f.fileno())

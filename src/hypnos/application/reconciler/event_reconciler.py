"""Event reconciler - drives the mirror from the ledger's event stream."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
from typing import TypeVar

from hypnos.application.dto.event_record import decode_record
from hypnos.application.ports import EventLog, RawEventRecord
from hypnos.application.use_cases.reconcile.apply_event import ApplyEventUseCase
from hypnos.domain.entities import DeadLetter
from hypnos.domain.exceptions import MalformedEvent, TransientStorageError
from hypnos.domain.value_objects import DeadLetterStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ReconcileReport:
    """Outcome of one pass over the stream."""

    cursor: int
    applied: int = 0
    blocked_at: int | None = None


@dataclass
class ReconcilerStatus:
    stream: str
    cursor: int
    head: int
    blocked_at: int | None
    running: bool


class EventReconciler:
    """Applies events in sequence order, one worker per stream.

    The cursor moves only in the transaction that applied the event. Transient
    storage errors are retried with exponential backoff. An undecodable
    record is parked as a dead letter and the stream stays pinned on it until
    an operator skips or resolves it.
    """

    def __init__(
        self,
        event_log: EventLog,
        unit_of_work_factory: type,
        apply_event: ApplyEventUseCase,
        *,
        stream: str = "ledger",
        batch_size: int = 100,
        max_attempts: int = 5,
        backoff_initial: float = 0.2,
        backoff_max: float = 10.0,
        poll_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._event_log = event_log
        self._uow_factory = unit_of_work_factory
        self._apply_event = apply_event
        self._stream = stream
        self._batch_size = batch_size
        self._max_attempts = max(1, max_attempts)
        self._backoff_initial = backoff_initial
        self._backoff_max = backoff_max
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._stop = asyncio.Event()
        self._running = False
        self._blocked_at: int | None = None

    @property
    def stream(self) -> str:
        return self._stream

    async def run_once(self) -> ReconcileReport:
        """Apply everything available after the stored cursor, or up to a dead letter."""
        cursor = await self._with_retry(self._read_cursor)
        report = ReconcileReport(cursor=cursor)
        while not self._stop.is_set():
            records = await self._event_log.read(cursor, self._batch_size)
            if not records:
                break
            for record in records:
                if self._stop.is_set():
                    break
                if not await self._process(record):
                    report.blocked_at = record.sequence
                    self._blocked_at = record.sequence
                    return report
                cursor = record.sequence
                report.cursor = cursor
                report.applied += 1
        self._blocked_at = None
        return report

    async def run(self) -> None:
        """Reconcile until ``request_stop``; the event in flight is finished first.

        A failed pass keeps the cursor and is retried after a growing pause.
        """
        self._stop.clear()
        self._running = True
        logger.info("Reconciler started on stream %s", self._stream)
        failures = 0
        try:
            while not self._stop.is_set():
                try:
                    report = await self.run_once()
                except TransientStorageError as e:
                    failures += 1
                    logger.error("Reconciler pass failed, cursor kept: %s", e)
                    await self._idle(None, self._failure_delay(failures))
                    continue
                except Exception:
                    failures += 1
                    logger.exception(
                        "Reconciler pass on stream %s failed unexpectedly, cursor kept",
                        self._stream,
                    )
                    await self._idle(None, self._failure_delay(failures))
                    continue
                failures = 0
                if report.applied:
                    logger.info(
                        "Reconciler applied %d events, cursor %d", report.applied, report.cursor
                    )
                await self._idle(None if report.blocked_at is not None else report.cursor)
        finally:
            self._running = False
            logger.info("Reconciler stopped on stream %s", self._stream)

    def request_stop(self) -> None:
        self._stop.set()

    async def status(self) -> ReconcilerStatus:
        return ReconcilerStatus(
            stream=self._stream,
            cursor=await self._with_retry(self._read_cursor),
            head=await self._event_log.last_sequence(),
            blocked_at=self._blocked_at,
            running=self._running,
        )

    async def _process(self, record: RawEventRecord) -> bool:
        try:
            envelope = decode_record(record.sequence, record.data)
        except MalformedEvent as e:
            await self._dead_letter(record, e.reason)
            return False
        try:
            await self._with_retry(partial(self._apply_event.execute, self._stream, envelope))
        except TransientStorageError:
            raise
        except Exception as e:
            logger.exception(
                "Applying %s at sequence %d failed", envelope.event.kind, record.sequence
            )
            await self._dead_letter(record, f"apply failed: {e!r}")
            return False
        logger.debug("Applied %s at sequence %d", envelope.event.kind, envelope.sequence)
        return True

    async def _dead_letter(self, record: RawEventRecord, reason: str) -> None:
        parked = await self._with_retry(partial(self._park, record, reason))
        if parked:
            logger.error(
                "Dead letter on stream %s at sequence %d: %s",
                self._stream,
                record.sequence,
                reason,
            )

    async def _read_cursor(self) -> int:
        async with self._uow_factory() as uow:
            return await uow.cursors.get(self._stream)

    async def _park(self, record: RawEventRecord, reason: str) -> bool:
        raw = record.data if isinstance(record.data, str) else json.dumps(record.data)
        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            return await uow.dead_letters.park(
                DeadLetter(
                    stream=self._stream,
                    sequence=record.sequence,
                    raw=raw,
                    error=reason,
                    status=DeadLetterStatus.PENDING,
                    created_at=now,
                    updated_at=now,
                )
            )

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        delay = self._backoff_initial
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await operation()
            except TransientStorageError as e:
                if attempt == self._max_attempts:
                    raise
                logger.warning(
                    "Mirror storage unavailable (attempt %d/%d): %s; retrying in %.2fs",
                    attempt,
                    self._max_attempts,
                    e,
                    delay,
                )
                await self._sleep(delay)
                delay = min(delay * 2, self._backoff_max)

    def _failure_delay(self, failures: int) -> float:
        return min(self._backoff_initial * 2 ** (failures - 1), self._backoff_max)

    async def _idle(self, cursor: int | None, delay: float | None = None) -> None:
        """Wait for new events after ``cursor`` (or ``delay``), or a stop request."""
        stop = asyncio.ensure_future(self._stop.wait())
        if cursor is None:
            wake = asyncio.ensure_future(asyncio.sleep(delay or self._poll_interval))
        else:
            wake = asyncio.ensure_future(
                self._event_log.wait_for_new(cursor, self._poll_interval)
            )
        done, pending = await asyncio.wait({stop, wake}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if wake in done and wake.exception() is not None:
            logger.warning(
                "Waiting for events on stream %s failed: %s", self._stream, wake.exception()
            )
            try:
                await asyncio.wait_for(self._stop.wait(), self._poll_interval)
            except TimeoutError:
                pass

"""Dead letter use cases - operator release of a pinned stream."""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from hypnos.application.dto.event_record import decode_record
from hypnos.application.use_cases.reconcile.apply_event import ApplyEventUseCase
from hypnos.domain.entities import DeadLetter
from hypnos.domain.exceptions import NotFound, ValidationError
from hypnos.domain.value_objects import DeadLetterStatus

logger = logging.getLogger(__name__)


class ManageDeadLettersUseCase:
    """List, skip or resolve dead letters.

    Skipping or resolving only works on the letter the cursor is pinned at,
    and advances the cursor past it in the same transaction.
    """

    def __init__(self, unit_of_work_factory: type, apply_event: ApplyEventUseCase) -> None:
        self._uow_factory = unit_of_work_factory
        self._apply_event = apply_event

    async def list(
        self, stream: str, status: DeadLetterStatus | None = None
    ) -> list[DeadLetter]:
        async with self._uow_factory() as uow:
            return await uow.dead_letters.list(stream, status)

    async def skip(self, stream: str, sequence: int) -> DeadLetter:
        """Give up on the event at ``sequence``; the mirror never sees it."""
        async with self._uow_factory() as uow:
            letter = await self._pinned_letter(uow, stream, sequence)
            letter.status = DeadLetterStatus.SKIPPED
            letter.updated_at = datetime.now(UTC)
            await uow.dead_letters.update(letter)
            await uow.cursors.advance(stream, sequence)
        logger.warning("Dead letter %s/%d skipped by operator", stream, sequence)
        return letter

    async def resolve(
        self, stream: str, sequence: int, record: str | dict[str, Any]
    ) -> DeadLetter:
        """Apply an operator-corrected record in place of the parked one.

        Raises MalformedEvent if the correction does not decode either.
        """
        envelope = decode_record(sequence, record)
        replacement = record if isinstance(record, str) else json.dumps(record)
        async with self._uow_factory() as uow:
            letter = await self._pinned_letter(uow, stream, sequence)
            await self._apply_event.apply(uow, envelope)
            letter.status = DeadLetterStatus.RESOLVED
            letter.replacement = replacement
            letter.updated_at = datetime.now(UTC)
            await uow.dead_letters.update(letter)
            await uow.cursors.advance(stream, sequence)
        logger.info("Dead letter %s/%d resolved by operator", stream, sequence)
        return letter

    async def _pinned_letter(self, uow, stream: str, sequence: int) -> DeadLetter:
        letter = await uow.dead_letters.get(stream, sequence)
        if letter is None:
            raise NotFound(f"Dead letter {stream}/{sequence} not found")
        if letter.status != DeadLetterStatus.PENDING:
            raise ValidationError(f"Dead letter {stream}/{sequence} is already {letter.status}")
        cursor = await uow.cursors.get(stream)
        if cursor != sequence - 1:
            raise ValidationError(
                f"Stream {stream} cursor is at {cursor}, not pinned at {sequence}"
            )
        return letter

"""Apply event use case - project one ledger event onto the mirror."""

import logging
from dataclasses import asdict
from typing import assert_never

from hypnos.application.ports import MirrorUnitOfWork
from hypnos.domain.entities import AuditEvent, Execution, Permission
from hypnos.domain.events import (
    CapabilityGranted,
    CapabilityRevoked,
    EventEnvelope,
    ExecutionRecorded,
    PermissionUsed,
)

logger = logging.getLogger(__name__)


class ApplyEventUseCase:
    """Idempotently apply a ledger event and advance the stream cursor.

    Every write is insert-if-absent or a monotonic update, so applying the
    same envelope again leaves the mirror unchanged.
    """

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, stream: str, envelope: EventEnvelope) -> None:
        """Apply envelope and move the cursor in one transaction."""
        async with self._uow_factory() as uow:
            await self.apply(uow, envelope)
            await uow.cursors.advance(stream, envelope.sequence)

    async def apply(self, uow: MirrorUnitOfWork, envelope: EventEnvelope) -> None:
        event = envelope.event
        match event:
            case CapabilityGranted():
                await self._on_granted(uow, envelope, event)
            case CapabilityRevoked():
                await self._on_revoked(uow, envelope, event)
            case PermissionUsed():
                await self._on_used(uow, envelope, event)
            case ExecutionRecorded():
                await self._on_recorded(uow, envelope, event)
            case _:
                assert_never(event)

    async def _on_granted(
        self, uow: MirrorUnitOfWork, envelope: EventEnvelope, event: CapabilityGranted
    ) -> None:
        # Grant fields never change; first insert wins so replays cannot undo a revoke.
        created = await uow.permissions.insert_if_absent(
            Permission(
                id=event.capability_id,
                owner=event.grantee,
                target=event.target,
                selector=event.selector,
                max_value=event.max_value,
                max_token_amount=event.max_token_amount,
                token_asset=event.token_asset,
                expiry=event.expiry,
                active=True,
                granted_at=envelope.timestamp,
                granted_at_block=envelope.block_number,
                granted_tx=envelope.transaction_hash,
            )
        )
        await self._audit(uow, envelope, event.capability_id, event.grantee)
        logger.debug(
            "Permission granted: %s for %s%s",
            event.capability_id,
            event.grantee,
            "" if created else " (replay)",
        )

    async def _on_revoked(
        self, uow: MirrorUnitOfWork, envelope: EventEnvelope, event: CapabilityRevoked
    ) -> None:
        found = await uow.permissions.mark_revoked(
            event.capability_id,
            revoked_at=envelope.timestamp,
            revoked_at_block=envelope.block_number,
            revoked_tx=envelope.transaction_hash,
        )
        if not found:
            logger.warning("Revocation of unknown permission %s skipped", event.capability_id)
        await self._audit(uow, envelope, event.capability_id, event.grantee)

    async def _on_used(
        self, uow: MirrorUnitOfWork, envelope: EventEnvelope, event: PermissionUsed
    ) -> None:
        await self._audit(uow, envelope, event.capability_id, event.grantee)

    async def _on_recorded(
        self, uow: MirrorUnitOfWork, envelope: EventEnvelope, event: ExecutionRecorded
    ) -> None:
        await self._audit(uow, envelope, event.capability_id, event.caller)

        permission = await uow.permissions.get_by_id(event.capability_id)
        if permission is None:
            logger.warning(
                "Execution %s references unknown permission %s; projection dropped",
                event.execution_id,
                event.capability_id,
            )
            return

        await uow.executions.insert_if_absent(
            Execution(
                id=event.execution_id,
                caller=event.caller,
                target=event.target,
                selector=event.selector,
                value=event.value,
                permission_id=permission.id,
                success=event.success,
                reason=event.reason,
                timestamp=envelope.timestamp,
                block_number=envelope.block_number,
                transaction_hash=envelope.transaction_hash,
            )
        )

    async def _audit(
        self,
        uow: MirrorUnitOfWork,
        envelope: EventEnvelope,
        permission_id: str,
        principal: str,
    ) -> None:
        await uow.audit_events.insert_if_absent(
            AuditEvent(
                id=envelope.audit_id,
                kind=envelope.event.kind,
                permission_id=permission_id,
                principal=principal,
                transaction_hash=envelope.transaction_hash,
                log_index=envelope.log_index,
                block_number=envelope.block_number,
                timestamp=envelope.timestamp,
                details=asdict(envelope.event),
            )
        )

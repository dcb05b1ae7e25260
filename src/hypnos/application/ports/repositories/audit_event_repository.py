"""Audit event repository port."""

from typing import Protocol

from hypnos.domain.entities import AuditEvent
from hypnos.domain.value_objects import EventKind


class AuditEventRepository(Protocol):
    """Port for append-only audit rows."""

    async def insert_if_absent(self, event: AuditEvent) -> bool: ...

    async def list_by_kind(
        self,
        kind: EventKind,
        *,
        permission_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEvent]: ...

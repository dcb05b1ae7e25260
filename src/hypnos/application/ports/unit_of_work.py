"""Mirror Unit of Work port - transactional boundary for the read model."""

from collections.abc import AsyncIterator
from typing import Protocol

from hypnos.application.ports.repositories.audit_event_repository import (
    AuditEventRepository,
)
from hypnos.application.ports.repositories.cursor_repository import CursorRepository
from hypnos.application.ports.repositories.dead_letter_repository import (
    DeadLetterRepository,
)
from hypnos.application.ports.repositories.execution_repository import (
    ExecutionRepository,
)
from hypnos.application.ports.repositories.permission_repository import (
    PermissionRepository,
)


class MirrorUnitOfWork(Protocol):
    """Unit of Work - manages transaction and repository access."""

    @property
    def permissions(self) -> PermissionRepository: ...

    @property
    def executions(self) -> ExecutionRepository: ...

    @property
    def audit_events(self) -> AuditEventRepository: ...

    @property
    def cursors(self) -> CursorRepository: ...

    @property
    def dead_letters(self) -> DeadLetterRepository: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class MirrorUnitOfWorkFactory(Protocol):
    """Factory for creating MirrorUnitOfWork instances."""

    async def __call__(self) -> AsyncIterator[MirrorUnitOfWork]: ...

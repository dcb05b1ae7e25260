"""Repository ports."""

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

__all__ = [
    "AuditEventRepository",
    "CursorRepository",
    "DeadLetterRepository",
    "ExecutionRepository",
    "PermissionRepository",
]

"""Domain entities."""

from hypnos.domain.entities.audit_event import AuditEvent, audit_event_id
from hypnos.domain.entities.capability import Capability
from hypnos.domain.entities.dead_letter import DeadLetter
from hypnos.domain.entities.execution import Execution
from hypnos.domain.entities.execution_record import SUCCESS_REASON, ExecutionRecord
from hypnos.domain.entities.permission import Permission

__all__ = [
    "AuditEvent",
    "Capability",
    "DeadLetter",
    "Execution",
    "ExecutionRecord",
    "Permission",
    "SUCCESS_REASON",
    "audit_event_id",
]

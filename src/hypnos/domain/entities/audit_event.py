"""Audit event entity - one row per emitted ledger event."""

from dataclasses import dataclass, field

from hypnos.domain.value_objects import EventKind


@dataclass
class AuditEvent:
    """Immutable audit row keyed by ``{transaction_hash}-{log_index}``.

    ``kind`` is the ledger event kind. ``details`` holds the event arguments.
    """

    id: str
    kind: EventKind
    permission_id: str
    principal: str
    transaction_hash: str
    log_index: int
    block_number: int
    timestamp: int
    details: dict = field(default_factory=dict)


def audit_event_id(transaction_hash: str, log_index: int) -> str:
    """Globally unique audit key."""
    return f"{transaction_hash}-{log_index}"

"""Ledger events - closed set of event kinds emitted by the capability ledger."""

from dataclasses import dataclass
from typing import ClassVar

from hypnos.domain.entities.audit_event import audit_event_id
from hypnos.domain.value_objects import EventKind


@dataclass(frozen=True)
class CapabilityGranted:
    kind: ClassVar[EventKind] = EventKind.CAPABILITY_GRANTED

    grantee: str
    capability_id: str
    target: str
    selector: str
    max_value: int
    max_token_amount: int
    token_asset: str | None
    expiry: int


@dataclass(frozen=True)
class CapabilityRevoked:
    kind: ClassVar[EventKind] = EventKind.CAPABILITY_REVOKED

    grantee: str
    capability_id: str


@dataclass(frozen=True)
class PermissionUsed:
    kind: ClassVar[EventKind] = EventKind.PERMISSION_USED

    grantee: str
    capability_id: str
    execution_id: str
    target: str
    selector: str
    value: int
    success: bool


@dataclass(frozen=True)
class ExecutionRecorded:
    kind: ClassVar[EventKind] = EventKind.EXECUTION_RECORDED

    execution_id: str
    caller: str
    target: str
    selector: str
    value: int
    capability_id: str
    success: bool
    reason: str


LedgerEvent = CapabilityGranted | CapabilityRevoked | PermissionUsed | ExecutionRecorded

EVENT_TYPES: dict[EventKind, type] = {
    EventKind.CAPABILITY_GRANTED: CapabilityGranted,
    EventKind.CAPABILITY_REVOKED: CapabilityRevoked,
    EventKind.PERMISSION_USED: PermissionUsed,
    EventKind.EXECUTION_RECORDED: ExecutionRecorded,
}


@dataclass(frozen=True)
class EventEnvelope:
    """Event plus its origin: transaction, position in it, block and time.

    ``sequence`` is assigned by the event log on append (0 until then).
    """

    transaction_hash: str
    log_index: int
    block_number: int
    timestamp: int
    event: LedgerEvent
    sequence: int = 0

    @property
    def audit_id(self) -> str:
        return audit_event_id(self.transaction_hash, self.log_index)

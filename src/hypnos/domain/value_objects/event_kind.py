"""Kinds of ledger events."""

from enum import StrEnum


class EventKind(StrEnum):
    """Event names as they appear on the stream."""

    CAPABILITY_GRANTED = "CapabilityGranted"
    CAPABILITY_REVOKED = "CapabilityRevoked"
    PERMISSION_USED = "PermissionUsed"
    EXECUTION_RECORDED = "ExecutionRecorded"

"""Execution entity - mirror of an execution record."""

from dataclasses import dataclass


@dataclass
class Execution:
    """Execution linked to its permission."""

    id: str
    caller: str
    target: str
    selector: str
    value: int
    permission_id: str
    success: bool
    reason: str
    timestamp: int
    block_number: int
    transaction_hash: str

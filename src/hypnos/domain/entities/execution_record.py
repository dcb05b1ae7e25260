"""Execution record - audit entry for one gated call."""

from dataclasses import dataclass

from hypnos.domain.value_objects import Selector

SUCCESS_REASON = "success"


@dataclass(frozen=True)
class ExecutionRecord:
    """Immutable record of an attempted gated call. ``sequence`` is append order, from 1."""

    id: str
    sequence: int
    caller: str
    target: str
    selector: Selector
    value: int
    success: bool
    reason: str
    capability_id: str
    created_at: int

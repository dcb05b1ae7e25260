"""Call executor port - invokes a target with value and payload."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class CallResult:
    """Outcome of an inner call. On failure ``return_data`` carries the revert data."""

    success: bool
    return_data: bytes = b""


class CallExecutor(Protocol):
    """Port for invoking external targets.

    Implementations report target failure as ``CallResult(success=False)``
    rather than raising.
    """

    async def call(self, sender: str, target: str, payload: bytes, value: int) -> CallResult: ...

"""In-process call executor - routes calls to registered Python targets."""

import logging
from dataclasses import dataclass
from typing import Protocol

from hypnos.application.ports import CallResult
from hypnos.domain.revert_reason import encode_revert_reason
from hypnos.domain.value_objects import normalize_identifier

logger = logging.getLogger(__name__)


class TargetRevert(Exception):
    """Raised by target code to fail the call with the given return data."""

    def __init__(self, data: bytes = b"") -> None:
        self.data = data
        super().__init__(data.hex())

    @classmethod
    def with_reason(cls, reason: str) -> "TargetRevert":
        return cls(encode_revert_reason(reason))


@dataclass(frozen=True)
class CallContext:
    sender: str
    payload: bytes
    value: int


class CallTarget(Protocol):
    async def handle(self, ctx: CallContext) -> bytes: ...


class InProcessCallExecutor:
    """Registry of target identifier to handler object.

    Unregistered targets accept the call and return nothing, like a value
    transfer to a plain account.
    """

    def __init__(self) -> None:
        self._targets: dict[str, CallTarget] = {}

    def register(self, address: str, target: CallTarget) -> None:
        self._targets[normalize_identifier(address)] = target

    def unregister(self, address: str) -> None:
        self._targets.pop(normalize_identifier(address), None)

    async def call(self, sender: str, target: str, payload: bytes, value: int) -> CallResult:
        handler = self._targets.get(normalize_identifier(target))
        if handler is None:
            return CallResult(success=True)
        try:
            data = await handler.handle(CallContext(sender=sender, payload=payload, value=value))
        except TargetRevert as e:
            return CallResult(success=False, return_data=e.data)
        except Exception as e:
            logger.warning("Target %s raised %s: %s", target, type(e).__name__, e)
            return CallResult(success=False, return_data=encode_revert_reason(str(e)))
        return CallResult(success=True, return_data=data or b"")

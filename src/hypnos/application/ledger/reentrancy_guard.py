"""Reentrancy guard for ledger mutations."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from itertools import count

from hypnos.domain.exceptions import ReentrantCall

_guard_ids = count(1)


class ReentrancyGuard:
    """Scoped guard around ledger mutations.

    The lock serialises top-level callers. The context variable marks the
    call chain holding the guard, so code invoked from inside it (including
    tasks it spawns, which copy the context) is rejected instead of waiting
    on a lock its own caller holds.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._held: ContextVar[bool] = ContextVar(
            f"hypnos_reentrancy_guard_{next(_guard_ids)}", default=False
        )

    @property
    def held(self) -> bool:
        """True when the current call chain holds the guard."""
        return self._held.get()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        if self._held.get():
            raise ReentrantCall("Re-entrant ledger call rejected")
        async with self._lock:
            token = self._held.set(True)
            try:
                yield
            finally:
                self._held.reset(token)

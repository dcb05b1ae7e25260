"""Pytest fixtures for Hypnos tests."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace

import pytest

from hypnos.application.ledger.capability_ledger import CapabilityLedger
from hypnos.domain.entities import AuditEvent, DeadLetter, Execution, Permission
from hypnos.domain.exceptions import TransientStorageError
from hypnos.domain.value_objects import DeadLetterStatus, EventKind
from hypnos.infrastructure.assets.in_memory_bank import InMemoryAssetBank
from hypnos.infrastructure.events.in_memory_log import InMemoryEventLog
from hypnos.infrastructure.execution import DemoTarget, InProcessCallExecutor
from hypnos.infrastructure.ledger.in_memory_store import InMemoryLedgerStore

GRANTEE = "0x00000000000000000000000000000000000000a1"
OTHER = "0x00000000000000000000000000000000000000b2"
TARGET = "0x00000000000000000000000000000000000000c3"
DEMO = "0x000000000000000000000000000000000000de30"
TOKEN = "0x00000000000000000000000000000000000000d4"
T0 = 1_700_000_000


# --- Fake mirror repositories ---


class FakePermissionRepository:
    """In-memory permission repository."""

    def __init__(self) -> None:
        self._by_id: dict[str, Permission] = {}

    async def get_by_id(self, permission_id: str) -> Permission | None:
        p = self._by_id.get(permission_id)
        return replace(p) if p else None

    async def insert_if_absent(self, permission: Permission) -> bool:
        if permission.id in self._by_id:
            return False
        self._by_id[permission.id] = replace(permission)
        return True

    async def mark_revoked(
        self, permission_id: str, revoked_at: int, revoked_at_block: int, revoked_tx: str
    ) -> bool:
        p = self._by_id.get(permission_id)
        if not p:
            return False
        p.active = False
        if p.revoked_at is None:
            p.revoked_at = revoked_at
            p.revoked_at_block = revoked_at_block
            p.revoked_tx = revoked_tx
        return True

    async def list(
        self,
        *,
        owner: str | None = None,
        active: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Permission]:
        items = [
            p
            for p in self._by_id.values()
            if (owner is None or p.owner == owner) and (active is None or p.active == active)
        ]
        items.sort(key=lambda p: (-p.granted_at_block, p.id))
        return [replace(p) for p in items[offset : offset + limit]]


class FakeExecutionRepository:
    """In-memory execution repository."""

    def __init__(self) -> None:
        self._by_id: dict[str, Execution] = {}

    async def get_by_id(self, execution_id: str) -> Execution | None:
        return self._by_id.get(execution_id)

    async def insert_if_absent(self, execution: Execution) -> bool:
        if execution.id in self._by_id:
            return False
        self._by_id[execution.id] = execution
        return True

    async def list(
        self,
        *,
        caller: str | None = None,
        permission_id: str | None = None,
        success: bool | None = None,
        ascending: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Execution]:
        items = [
            e
            for e in self._by_id.values()
            if (caller is None or e.caller == caller)
            and (permission_id is None or e.permission_id == permission_id)
            and (success is None or e.success == success)
        ]
        items.sort(key=lambda e: (e.timestamp, e.block_number), reverse=not ascending)
        return items[offset : offset + limit]


class FakeAuditEventRepository:
    """In-memory audit event repository."""

    def __init__(self) -> None:
        self._by_id: dict[str, AuditEvent] = {}

    async def insert_if_absent(self, event: AuditEvent) -> bool:
        if event.id in self._by_id:
            return False
        self._by_id[event.id] = event
        return True

    async def list_by_kind(
        self,
        kind: EventKind,
        *,
        permission_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEvent]:
        items = [
            a
            for a in self._by_id.values()
            if a.kind == kind and (permission_id is None or a.permission_id == permission_id)
        ]
        items.sort(key=lambda a: (a.block_number, a.log_index))
        return items[offset : offset + limit]


class FakeCursorRepository:
    """In-memory cursor repository."""

    def __init__(self) -> None:
        self._by_stream: dict[str, int] = {}

    async def get(self, stream: str) -> int:
        return self._by_stream.get(stream, 0)

    async def advance(self, stream: str, sequence: int) -> None:
        self._by_stream[stream] = max(self._by_stream.get(stream, 0), sequence)


class FakeDeadLetterRepository:
    """In-memory dead letter repository."""

    def __init__(self) -> None:
        self._by_key: dict[tuple[str, int], DeadLetter] = {}

    async def get(self, stream: str, sequence: int) -> DeadLetter | None:
        letter = self._by_key.get((stream, sequence))
        return replace(letter) if letter else None

    async def park(self, letter: DeadLetter) -> bool:
        key = (letter.stream, letter.sequence)
        if key in self._by_key:
            return False
        self._by_key[key] = replace(letter)
        return True

    async def update(self, letter: DeadLetter) -> None:
        self._by_key[(letter.stream, letter.sequence)] = replace(letter)

    async def list(
        self, stream: str, status: DeadLetterStatus | None = None
    ) -> list[DeadLetter]:
        return [
            replace(d)
            for (s, _), d in sorted(self._by_key.items())
            if s == stream and (status is None or d.status == status)
        ]


class FakeUnitOfWork:
    """In-memory mirror Unit of Work with fake repositories.

    ``fail_next`` makes the next N transactions raise TransientStorageError
    on entry; ``fail_on_commit`` does the same after the body ran, so the
    rollback path is exercised.
    """

    def __init__(self) -> None:
        self.permissions = FakePermissionRepository()
        self.executions = FakeExecutionRepository()
        self.audit_events = FakeAuditEventRepository()
        self.cursors = FakeCursorRepository()
        self.dead_letters = FakeDeadLetterRepository()
        self.fail_next = 0
        self.fail_on_commit = 0
        self.transactions = 0

    def state(self) -> dict:
        """Comparable snapshot of everything the mirror holds."""
        return copy.deepcopy(
            {
                "permissions": self.permissions._by_id,
                "executions": self.executions._by_id,
                "audit_events": self.audit_events._by_id,
                "cursors": self.cursors._by_stream,
                "dead_letters": self.dead_letters._by_key,
            }
        )

    def _restore(self, state: dict) -> None:
        self.permissions._by_id = state["permissions"]
        self.executions._by_id = state["executions"]
        self.audit_events._by_id = state["audit_events"]
        self.cursors._by_stream = state["cursors"]
        self.dead_letters._by_key = state["dead_letters"]

    async def commit(self) -> None:
        if self.fail_on_commit:
            self.fail_on_commit -= 1
            raise TransientStorageError("commit failed")

    async def rollback(self) -> None:
        pass


def make_uow_factory(uow: FakeUnitOfWork):
    """Factory sharing one FakeUnitOfWork; a failed transaction leaves no trace."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUnitOfWork]:
        if uow.fail_next:
            uow.fail_next -= 1
            raise TransientStorageError("connection refused")
        before = uow.state()
        try:
            yield uow
            await uow.commit()
        except BaseException:
            uow._restore(before)
            raise
        uow.transactions += 1

    return _factory


class FakeClock:
    """Settable clock."""

    def __init__(self, now: int = T0) -> None:
        self.now_value = now

    def now(self) -> int:
        return self.now_value

    def advance(self, seconds: int) -> None:
        self.now_value += seconds


# --- Fixtures ---


@pytest.fixture
def fake_uow() -> FakeUnitOfWork:
    """Fresh in-memory mirror for each test."""
    return FakeUnitOfWork()


@pytest.fixture
def uow_factory(fake_uow: FakeUnitOfWork):
    """Factory returning async context manager over the shared fake mirror."""
    return make_uow_factory(fake_uow)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class BreakableEventLog(InMemoryEventLog):
    """In-memory log whose appends raise ``append_error`` while it is set."""

    def __init__(self) -> None:
        super().__init__()
        self.append_error: Exception | None = None

    async def append(self, envelopes):
        if self.append_error is not None:
            raise self.append_error
        return await super().append(envelopes)


@pytest.fixture
def event_log() -> BreakableEventLog:
    return BreakableEventLog()


@pytest.fixture
def demo_target() -> DemoTarget:
    return DemoTarget()


@pytest.fixture
def call_executor(demo_target: DemoTarget) -> InProcessCallExecutor:
    executor = InProcessCallExecutor()
    executor.register(DEMO, demo_target)
    return executor


@pytest.fixture
def asset_bank() -> InMemoryAssetBank:
    bank = InMemoryAssetBank()
    bank.mint(TOKEN, GRANTEE, 1_000)
    return bank


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def ledger(store, event_log, call_executor, asset_bank, clock) -> CapabilityLedger:
    """Ledger over in-memory adapters with a settable clock."""
    return CapabilityLedger(
        store=store,
        event_log=event_log,
        call_executor=call_executor,
        asset_transfer=asset_bank,
        clock=clock,
    )

"""PostgreSQL Unit of Work implementation."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import psycopg
from psycopg_pool import AsyncConnectionPool

from hypnos.domain.exceptions import TransientStorageError
from hypnos.infrastructure.persistence.postgres.audit_event_repository import (
    PostgresAuditEventRepository,
)
from hypnos.infrastructure.persistence.postgres.cursor_repository import (
    PostgresCursorRepository,
)
from hypnos.infrastructure.persistence.postgres.dead_letter_repository import (
    PostgresDeadLetterRepository,
)
from hypnos.infrastructure.persistence.postgres.execution_repository import (
    PostgresExecutionRepository,
)
from hypnos.infrastructure.persistence.postgres.permission_repository import (
    PostgresPermissionRepository,
)


class PostgresUnitOfWork:
    """PostgreSQL Unit of Work - one connection, one transaction."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool
        self._conn: object | None = None
        self._conn_cm: object | None = None

    async def __aenter__(self) -> "PostgresUnitOfWork":
        self._conn_cm = self._pool.connection()
        self._conn = await self._conn_cm.__aenter__()
        self._permissions = PostgresPermissionRepository(self._conn)
        self._executions = PostgresExecutionRepository(self._conn)
        self._audit_events = PostgresAuditEventRepository(self._conn)
        self._cursors = PostgresCursorRepository(self._conn)
        self._dead_letters = PostgresDeadLetterRepository(self._conn)
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if exc_type and self._conn:
            await self._conn.rollback()
        if self._conn_cm:
            await self._conn_cm.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def permissions(self) -> PostgresPermissionRepository:
        return self._permissions

    @property
    def executions(self) -> PostgresExecutionRepository:
        return self._executions

    @property
    def audit_events(self) -> PostgresAuditEventRepository:
        return self._audit_events

    @property
    def cursors(self) -> PostgresCursorRepository:
        return self._cursors

    @property
    def dead_letters(self) -> PostgresDeadLetterRepository:
        return self._dead_letters

    async def commit(self) -> None:
        if self._conn:
            await self._conn.commit()

    async def rollback(self) -> None:
        if self._conn:
            await self._conn.rollback()


def create_uow_factory(pool: AsyncConnectionPool) -> object:
    """Create UnitOfWork factory (async context manager).

    Connection-level failures (including pool timeouts) surface as
    TransientStorageError so callers can retry.
    """

    @asynccontextmanager
    async def factory() -> AsyncIterator[PostgresUnitOfWork]:
        try:
            uow = PostgresUnitOfWork(pool)
            async with uow:
                try:
                    yield uow
                    await uow.commit()
                except BaseException:
                    await uow.rollback()
                    raise
        except psycopg.OperationalError as e:
            raise TransientStorageError(f"Mirror storage unavailable: {e}") from e

    return factory

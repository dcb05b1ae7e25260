"""PostgreSQL audit event repository implementation."""

from psycopg import AsyncConnection
from psycopg.types.json import Jsonb

from hypnos.domain.entities import AuditEvent
from hypnos.domain.value_objects import EventKind

_COLUMNS = (
    "id, kind, permission_id, principal, transaction_hash, log_index, "
    "block_number, timestamp, details"
)


class PostgresAuditEventRepository:
    """Audit event repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def insert_if_absent(self, event: AuditEvent) -> bool:
        """Insert audit row unless ``txHash-logIndex`` exists."""
        cur = await self._conn.execute(
            f"INSERT INTO audit_event ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT (id) DO NOTHING",
            (
                event.id,
                event.kind.value,
                event.permission_id,
                event.principal,
                event.transaction_hash,
                event.log_index,
                event.block_number,
                event.timestamp,
                Jsonb(event.details),
            ),
        )
        return cur.rowcount == 1

    async def list_by_kind(
        self,
        kind: EventKind,
        *,
        permission_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEvent]:
        """List audit rows of one kind in stream order."""
        q = f"SELECT {_COLUMNS} FROM audit_event WHERE kind = %s"
        params: list[object] = [kind.value]
        if permission_id is not None:
            q += " AND permission_id = %s"
            params.append(permission_id)
        q += " ORDER BY block_number, log_index LIMIT %s OFFSET %s"
        cur = await self._conn.execute(q, (*params, limit, offset))
        rows = await cur.fetchall()
        return [
            AuditEvent(
                id=r[0],
                kind=EventKind(r[1]),
                permission_id=r[2],
                principal=r[3],
                transaction_hash=r[4],
                log_index=r[5],
                block_number=int(r[6]),
                timestamp=int(r[7]),
                details=r[8] or {},
            )
            for r in rows
        ]

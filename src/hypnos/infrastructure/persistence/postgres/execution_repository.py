"""PostgreSQL execution repository implementation."""

from psycopg import AsyncConnection

from hypnos.domain.entities import Execution

_COLUMNS = (
    "id, caller, target, selector, value, permission_id, success, reason, "
    "timestamp, block_number, transaction_hash"
)


def _build_execution_filters(
    caller: str | None, permission_id: str | None, success: bool | None
) -> tuple[str, list[object]]:
    """Build WHERE clause and params for execution listing."""
    conditions: list[str] = []
    params: list[object] = []
    if caller is not None:
        conditions.append("caller = %s")
        params.append(caller)
    if permission_id is not None:
        conditions.append("permission_id = %s")
        params.append(permission_id)
    if success is not None:
        conditions.append("success = %s")
        params.append(success)
    where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
    return where, params


def _row_to_execution(r: tuple) -> Execution:
    return Execution(
        id=r[0],
        caller=r[1],
        target=r[2],
        selector=r[3],
        value=int(r[4]),
        permission_id=r[5],
        success=r[6],
        reason=r[7],
        timestamp=int(r[8]),
        block_number=int(r[9]),
        transaction_hash=r[10],
    )


class PostgresExecutionRepository:
    """Execution repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, execution_id: str) -> Execution | None:
        """Get execution by id."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM execution WHERE id = %s",
            (execution_id,),
        )
        r = await cur.fetchone()
        return _row_to_execution(r) if r else None

    async def insert_if_absent(self, execution: Execution) -> bool:
        """Insert execution unless its id exists. Returns True when inserted."""
        cur = await self._conn.execute(
            f"INSERT INTO execution ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT (id) DO NOTHING",
            (
                execution.id,
                execution.caller,
                execution.target,
                execution.selector,
                execution.value,
                execution.permission_id,
                execution.success,
                execution.reason,
                execution.timestamp,
                execution.block_number,
                execution.transaction_hash,
            ),
        )
        return cur.rowcount == 1

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
        """List executions ordered by timestamp."""
        where, params = _build_execution_filters(caller, permission_id, success)
        direction = "ASC" if ascending else "DESC"
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM execution{where} "
            f"ORDER BY timestamp {direction}, block_number {direction}, id "
            "LIMIT %s OFFSET %s",
            (*params, limit, offset),
        )
        rows = await cur.fetchall()
        return [_row_to_execution(r) for r in rows]

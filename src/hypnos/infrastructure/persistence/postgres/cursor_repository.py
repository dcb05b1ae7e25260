"""PostgreSQL reconciler cursor repository implementation."""

from psycopg import AsyncConnection


class PostgresCursorRepository:
    """Cursor repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get(self, stream: str) -> int:
        cur = await self._conn.execute(
            "SELECT sequence FROM reconciler_cursor WHERE stream = %s",
            (stream,),
        )
        r = await cur.fetchone()
        return int(r[0]) if r else 0

    async def advance(self, stream: str, sequence: int) -> None:
        """Move cursor forward; never backwards."""
        await self._conn.execute(
            "INSERT INTO reconciler_cursor (stream, sequence, updated_at) "
            "VALUES (%s, %s, now()) "
            "ON CONFLICT (stream) DO UPDATE SET "
            "sequence = GREATEST(reconciler_cursor.sequence, EXCLUDED.sequence), "
            "updated_at = now()",
            (stream, sequence),
        )

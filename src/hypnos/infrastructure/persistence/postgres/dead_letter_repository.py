"""PostgreSQL dead letter repository implementation."""

from psycopg import AsyncConnection

from hypnos.domain.entities import DeadLetter
from hypnos.domain.value_objects import DeadLetterStatus

_COLUMNS = "stream, sequence, raw, error, status, created_at, updated_at, replacement"


def _row_to_letter(r: tuple) -> DeadLetter:
    return DeadLetter(
        stream=r[0],
        sequence=int(r[1]),
        raw=r[2],
        error=r[3],
        status=DeadLetterStatus(r[4]),
        created_at=r[5],
        updated_at=r[6],
        replacement=r[7],
    )


class PostgresDeadLetterRepository:
    """Dead letter repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get(self, stream: str, sequence: int) -> DeadLetter | None:
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM dead_letter WHERE stream = %s AND sequence = %s",
            (stream, sequence),
        )
        r = await cur.fetchone()
        return _row_to_letter(r) if r else None

    async def park(self, letter: DeadLetter) -> bool:
        """Store letter unless already parked. Returns True when inserted."""
        cur = await self._conn.execute(
            f"INSERT INTO dead_letter ({_COLUMNS}) VALUES (%s, %s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT (stream, sequence) DO NOTHING",
            (
                letter.stream,
                letter.sequence,
                letter.raw,
                letter.error,
                letter.status.value,
                letter.created_at,
                letter.updated_at,
                letter.replacement,
            ),
        )
        return cur.rowcount == 1

    async def update(self, letter: DeadLetter) -> None:
        await self._conn.execute(
            "UPDATE dead_letter SET status = %s, replacement = %s, updated_at = %s "
            "WHERE stream = %s AND sequence = %s",
            (
                letter.status.value,
                letter.replacement,
                letter.updated_at,
                letter.stream,
                letter.sequence,
            ),
        )

    async def list(
        self, stream: str, status: DeadLetterStatus | None = None
    ) -> list[DeadLetter]:
        q = f"SELECT {_COLUMNS} FROM dead_letter WHERE stream = %s"
        params: list[object] = [stream]
        if status is not None:
            q += " AND status = %s"
            params.append(status.value)
        cur = await self._conn.execute(q + " ORDER BY sequence", params)
        rows = await cur.fetchall()
        return [_row_to_letter(r) for r in rows]

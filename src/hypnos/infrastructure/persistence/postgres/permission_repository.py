"""PostgreSQL permission repository implementation."""

from psycopg import AsyncConnection

from hypnos.domain.entities import Permission

_COLUMNS = (
    "id, owner, target, selector, max_value, max_token_amount, token_asset, expiry, active, "
    "granted_at, granted_at_block, granted_tx, revoked_at, revoked_at_block, revoked_tx"
)


def _build_permission_filters(
    owner: str | None, active: bool | None
) -> tuple[str, list[object]]:
    """Build WHERE clause and params for permission listing."""
    conditions: list[str] = []
    params: list[object] = []
    if owner is not None:
        conditions.append("owner = %s")
        params.append(owner)
    if active is not None:
        conditions.append("active = %s")
        params.append(active)
    where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
    return where, params


def _row_to_permission(r: tuple) -> Permission:
    return Permission(
        id=r[0],
        owner=r[1],
        target=r[2],
        selector=r[3],
        max_value=int(r[4]),
        max_token_amount=int(r[5]),
        token_asset=r[6],
        expiry=int(r[7]),
        active=r[8],
        granted_at=int(r[9]),
        granted_at_block=int(r[10]),
        granted_tx=r[11],
        revoked_at=int(r[12]) if r[12] is not None else None,
        revoked_at_block=int(r[13]) if r[13] is not None else None,
        revoked_tx=r[14],
    )


class PostgresPermissionRepository:
    """Permission repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, permission_id: str) -> Permission | None:
        """Get permission by id."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM permission WHERE id = %s",
            (permission_id,),
        )
        r = await cur.fetchone()
        return _row_to_permission(r) if r else None

    async def insert_if_absent(self, permission: Permission) -> bool:
        """Insert permission unless its id exists. Returns True when inserted."""
        cur = await self._conn.execute(
            f"INSERT INTO permission ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT (id) DO NOTHING",
            (
                permission.id,
                permission.owner,
                permission.target,
                permission.selector,
                permission.max_value,
                permission.max_token_amount,
                permission.token_asset,
                permission.expiry,
                permission.active,
                permission.granted_at,
                permission.granted_at_block,
                permission.granted_tx,
                permission.revoked_at,
                permission.revoked_at_block,
                permission.revoked_tx,
            ),
        )
        return cur.rowcount == 1

    async def mark_revoked(
        self, permission_id: str, revoked_at: int, revoked_at_block: int, revoked_tx: str
    ) -> bool:
        """Deactivate permission; the first revocation is kept. False if unknown."""
        cur = await self._conn.execute(
            "UPDATE permission SET active = FALSE, "
            "revoked_at = COALESCE(revoked_at, %s), "
            "revoked_at_block = COALESCE(revoked_at_block, %s), "
            "revoked_tx = COALESCE(revoked_tx, %s) "
            "WHERE id = %s",
            (revoked_at, revoked_at_block, revoked_tx, permission_id),
        )
        return cur.rowcount == 1

    async def list(
        self,
        *,
        owner: str | None = None,
        active: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Permission]:
        """List permissions, newest grant first."""
        where, params = _build_permission_filters(owner, active)
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM permission{where} "
            "ORDER BY granted_at_block DESC, id LIMIT %s OFFSET %s",
            (*params, limit, offset),
        )
        rows = await cur.fetchall()
        return [_row_to_permission(r) for r in rows]

"""PostgreSQL async connection pool for the mirror."""

from psycopg_pool import AsyncConnectionPool


def create_pool(
    conninfo: str,
    min_size: int = 1,
    max_size: int = 10,
    timeout: float = 5.0,
    name: str = "hypnos-mirror",
) -> AsyncConnectionPool:
    """Create the mirror pool, unopened.

    Open it with ``await pool.open()`` (PoolLifespanMiddleware does this for
    the API). A checkout that waits longer than ``timeout`` raises
    ``PoolTimeout``, which the unit of work reports as a transient storage
    error. Connections are checked on checkout so a restarted database does
    not hand out dead ones.
    """
    return AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        name=name,
        check=AsyncConnectionPool.check_connection,
        open=False,
    )

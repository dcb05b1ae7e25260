"""Lifespan middleware - mirror pool and background reconciler."""

import asyncio
import logging
from typing import Any

from psycopg_pool import AsyncConnectionPool

from hypnos.application.reconciler.event_reconciler import EventReconciler

logger = logging.getLogger(__name__)


class PoolLifespanMiddleware:
    """Middleware that opens the connection pool on startup and closes on shutdown."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def process_startup(
        self, scope: dict[str, Any], event: dict[str, Any]
    ) -> None:
        """Open pool when ASGI server starts."""
        await self._pool.open()

    async def process_shutdown(
        self, scope: dict[str, Any], event: dict[str, Any]
    ) -> None:
        """Close pool when ASGI server shuts down."""
        await self._pool.close()


class ReconcilerLifespanMiddleware:
    """Runs the reconciler as a background task for the life of the app.

    Must come after PoolLifespanMiddleware: startup hooks run in order,
    shutdown hooks in reverse, so the reconciler stops before the pool closes.
    """

    def __init__(self, reconciler: EventReconciler) -> None:
        self._reconciler = reconciler
        self._task: asyncio.Task | None = None

    async def process_startup(
        self, scope: dict[str, Any], event: dict[str, Any]
    ) -> None:
        self._task = asyncio.create_task(self._reconciler.run())

    async def process_shutdown(
        self, scope: dict[str, Any], event: dict[str, Any]
    ) -> None:
        """Let the event in flight finish, then stop."""
        if self._task is None:
            return
        self._reconciler.request_stop()
        try:
            await self._task
        except Exception:
            logger.exception("Reconciler exited with an error")
        self._task = None

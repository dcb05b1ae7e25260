"""Health check endpoints."""

import falcon
import falcon.asgi

from hypnos.application.reconciler.event_reconciler import EventReconciler
from hypnos.domain.exceptions import TransientStorageError


class HealthResource:
    """Health and readiness endpoints."""

    def __init__(self, reconciler: EventReconciler | None = None) -> None:
        self._reconciler = reconciler

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        """GET /v1/health - liveness."""
        resp.media = {"status": "ok"}
        resp.status = falcon.HTTP_200

    async def on_get_ready(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        """GET /v1/health/ready - readiness (mirror storage reachable)."""
        if self._reconciler is not None:
            try:
                await self._reconciler.status()
            except TransientStorageError as e:
                resp.media = {"status": "unavailable", "detail": str(e)}
                resp.status = falcon.HTTP_503
                return
        resp.media = {"status": "ready"}
        resp.status = falcon.HTTP_200

"""Reconciler status and dead letter API resources."""

import falcon
import falcon.asgi

from hypnos.application.reconciler.event_reconciler import EventReconciler
from hypnos.application.use_cases.reconcile.manage_dead_letters import (
    ManageDeadLettersUseCase,
)
from hypnos.domain.exceptions import MalformedEvent, NotFound, ValidationError
from hypnos.domain.value_objects import DeadLetterStatus
from hypnos.interfaces.api.resources.errors import require_principal
from hypnos.interfaces.api.resources.serializers import dead_letter_to_dict


class ReconcilerStatusResource:
    """GET /v1/reconciler/status - cursor, log head and blocking dead letter."""

    def __init__(self, reconciler: EventReconciler) -> None:
        self._reconciler = reconciler

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        status = await self._reconciler.status()
        resp.media = {
            "stream": status.stream,
            "cursor": status.cursor,
            "head": status.head,
            "lag": max(status.head - status.cursor, 0),
            "blocked_at": status.blocked_at,
            "running": status.running,
        }
        resp.status = falcon.HTTP_200


class DeadLettersResource:
    """Dead letters of the reconciler stream.

    GET  /v1/reconciler/dead-letters
    POST /v1/reconciler/dead-letters/{sequence}/skip
    POST /v1/reconciler/dead-letters/{sequence}/resolve
    """

    def __init__(self, manage_dead_letters: ManageDeadLettersUseCase, stream: str) -> None:
        self._manage = manage_dead_letters
        self._stream = stream

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        status_param = req.get_param("status")
        try:
            status = DeadLetterStatus(status_param) if status_param else None
        except ValueError:
            resp.status = falcon.HTTP_400
            resp.media = {"error": f"Unknown status: {status_param}"}
            return
        letters = await self._manage.list(self._stream, status)
        resp.media = {"items": [dead_letter_to_dict(d) for d in letters]}
        resp.status = falcon.HTTP_200

    async def on_post_skip(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        sequence: int,
    ) -> None:
        if not require_principal(req, resp):
            return
        try:
            letter = await self._manage.skip(self._stream, sequence)
        except NotFound as e:
            resp.status = falcon.HTTP_404
            resp.media = {"error": str(e)}
            return
        except ValidationError as e:
            resp.status = falcon.HTTP_409
            resp.media = {"error": str(e)}
            return
        resp.media = dead_letter_to_dict(letter)
        resp.status = falcon.HTTP_200

    async def on_post_resolve(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        sequence: int,
    ) -> None:
        """Body is the corrected event record."""
        if not require_principal(req, resp):
            return
        record = await req.get_media(default_when_empty=None)
        if not isinstance(record, dict):
            resp.status = falcon.HTTP_400
            resp.media = {"error": "Corrected event record (JSON object) required"}
            return
        try:
            letter = await self._manage.resolve(self._stream, sequence, record)
        except MalformedEvent as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": e.reason}
            return
        except NotFound as e:
            resp.status = falcon.HTTP_404
            resp.media = {"error": str(e)}
            return
        except ValidationError as e:
            resp.status = falcon.HTTP_409
            resp.media = {"error": str(e)}
            return
        resp.media = dead_letter_to_dict(letter)
        resp.status = falcon.HTTP_200

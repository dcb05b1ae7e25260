"""Mirror (read model) API resources."""

import falcon
import falcon.asgi

from hypnos.domain.value_objects import EventKind, normalize_identifier
from hypnos.interfaces.api.resources.serializers import (
    audit_event_to_dict,
    execution_to_dict,
    permission_to_dict,
)


def _page(req: falcon.asgi.Request, default: int = 20) -> tuple[int, int]:
    limit = req.get_param_as_int("limit") or default
    limit = min(max(limit, 1), 100)
    offset = max(req.get_param_as_int("offset") or 0, 0)
    return limit, offset


class MirrorPermissionsResource:
    """GET /v1/mirror/permissions[/{permission_id}]."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        """List permissions, optionally by owner and active flag."""
        owner = req.get_param("owner")
        active = req.get_param_as_bool("active")
        limit, offset = _page(req)

        async with self._uow_factory() as uow:
            permissions = await uow.permissions.list(
                owner=normalize_identifier(owner) if owner else None,
                active=active,
                limit=limit,
                offset=offset,
            )

        resp.media = {"items": [permission_to_dict(p) for p in permissions]}
        resp.status = falcon.HTTP_200

    async def on_get_item(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        permission_id: str,
    ) -> None:
        async with self._uow_factory() as uow:
            permission = await uow.permissions.get_by_id(permission_id)
        if not permission:
            resp.status = falcon.HTTP_404
            resp.media = {"error": "Permission not found"}
            return
        resp.media = permission_to_dict(permission)
        resp.status = falcon.HTTP_200


class MirrorExecutionsResource:
    """GET /v1/mirror/executions[/{execution_id}]."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        """List executions, newest first unless ``order=asc``."""
        caller = req.get_param("caller")
        order = (req.get_param("order") or "desc").lower()
        if order not in ("asc", "desc"):
            resp.status = falcon.HTTP_400
            resp.media = {"error": "order must be asc or desc"}
            return
        limit, offset = _page(req)

        async with self._uow_factory() as uow:
            executions = await uow.executions.list(
                caller=normalize_identifier(caller) if caller else None,
                permission_id=req.get_param("permission_id"),
                success=req.get_param_as_bool("success"),
                ascending=order == "asc",
                limit=limit,
                offset=offset,
            )

        resp.media = {"items": [execution_to_dict(e) for e in executions]}
        resp.status = falcon.HTTP_200

    async def on_get_item(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        execution_id: str,
    ) -> None:
        """Execution with its linked permission - what an explanation is built from."""
        async with self._uow_factory() as uow:
            execution = await uow.executions.get_by_id(execution_id)
            permission = (
                await uow.permissions.get_by_id(execution.permission_id) if execution else None
            )
        if not execution:
            resp.status = falcon.HTTP_404
            resp.media = {"error": "Execution not found"}
            return
        resp.media = {
            "execution": execution_to_dict(execution),
            "permission": permission_to_dict(permission) if permission else None,
        }
        resp.status = falcon.HTTP_200


class MirrorEventsResource:
    """GET /v1/mirror/events/{kind} - audit rows of one event kind."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def on_get(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        kind: str,
    ) -> None:
        try:
            event_kind = EventKind(kind)
        except ValueError:
            resp.status = falcon.HTTP_400
            resp.media = {
                "error": f"Unknown event kind: {kind}",
                "kinds": [k.value for k in EventKind],
            }
            return
        limit, offset = _page(req, default=50)

        async with self._uow_factory() as uow:
            events = await uow.audit_events.list_by_kind(
                event_kind,
                permission_id=req.get_param("permission_id"),
                limit=limit,
                offset=offset,
            )

        resp.media = {"items": [audit_event_to_dict(e) for e in events]}
        resp.status = falcon.HTTP_200

"""Falcon ASGI application."""

import logging
from dataclasses import dataclass

import falcon
import falcon.asgi
from falcon.asgi import App

from hypnos.interfaces.api.resources.health import HealthResource
from hypnos.interfaces.api.resources.ledger import (
    CapabilitiesResource,
    CapabilityExecuteResource,
    CapabilityResource,
    CapabilityTransferResource,
    GranteeCapabilitiesResource,
    LedgerExecutionResource,
    LedgerStatsResource,
)
from hypnos.interfaces.api.resources.mirror import (
    MirrorEventsResource,
    MirrorExecutionsResource,
    MirrorPermissionsResource,
)
from hypnos.interfaces.api.resources.reconciler import (
    DeadLettersResource,
    ReconcilerStatusResource,
)

logger = logging.getLogger(__name__)


@dataclass
class Resources:
    """Every resource the app routes to."""

    health: HealthResource
    capabilities: CapabilitiesResource
    capability: CapabilityResource
    execute: CapabilityExecuteResource
    transfer: CapabilityTransferResource
    grantee_capabilities: GranteeCapabilitiesResource
    ledger_execution: LedgerExecutionResource
    ledger_stats: LedgerStatsResource
    mirror_permissions: MirrorPermissionsResource
    mirror_executions: MirrorExecutionsResource
    mirror_events: MirrorEventsResource
    reconciler_status: ReconcilerStatusResource
    dead_letters: DeadLettersResource


async def log_exception(req, resp, ex, params):
    logger.error(
        "Unhandled error on %s %s", req.method, req.path, exc_info=(type(ex), ex, ex.__traceback__)
    )
    resp.status = falcon.HTTP_500
    resp.media = {"title": "500 Internal Server Error"}


def create_app(resources: Resources, middleware: list | None = None) -> App:
    """Create Falcon ASGI app with routes."""
    app = falcon.asgi.App(middleware=middleware or [])
    app.add_error_handler(Exception, log_exception)

    app.add_route("/v1/health", resources.health)
    app.add_route("/v1/health/ready", resources.health, suffix="ready")

    app.add_route("/v1/ledger/capabilities", resources.capabilities)
    app.add_route("/v1/ledger/capabilities/{capability_id}", resources.capability)
    app.add_route("/v1/ledger/capabilities/{capability_id}/execute", resources.execute)
    app.add_route("/v1/ledger/capabilities/{capability_id}/transfer", resources.transfer)
    app.add_route(
        "/v1/ledger/grantees/{grantee}/capabilities", resources.grantee_capabilities
    )
    app.add_route(
        "/v1/ledger/grantees/{grantee}/capabilities/{capability_id}",
        resources.grantee_capabilities,
        suffix="item",
    )
    app.add_route("/v1/ledger/executions/{execution_id}", resources.ledger_execution)
    app.add_route("/v1/ledger/stats", resources.ledger_stats)

    app.add_route("/v1/mirror/permissions", resources.mirror_permissions)
    app.add_route(
        "/v1/mirror/permissions/{permission_id}", resources.mirror_permissions, suffix="item"
    )
    app.add_route("/v1/mirror/executions", resources.mirror_executions)
    app.add_route(
        "/v1/mirror/executions/{execution_id}", resources.mirror_executions, suffix="item"
    )
    app.add_route("/v1/mirror/events/{kind}", resources.mirror_events)

    app.add_route("/v1/reconciler/status", resources.reconciler_status)
    app.add_route("/v1/reconciler/dead-letters", resources.dead_letters)
    app.add_route(
        "/v1/reconciler/dead-letters/{sequence:int}/skip", resources.dead_letters, suffix="skip"
    )
    app.add_route(
        "/v1/reconciler/dead-letters/{sequence:int}/resolve",
        resources.dead_letters,
        suffix="resolve",
    )
    return app

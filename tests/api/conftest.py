"""Fixtures for API tests."""

import asyncio

import pytest
from falcon.testing import TestClient

from hypnos.application.reconciler.event_reconciler import EventReconciler
from hypnos.application.use_cases.reconcile.apply_event import ApplyEventUseCase
from hypnos.application.use_cases.reconcile.manage_dead_letters import (
    ManageDeadLettersUseCase,
)
from hypnos.interfaces.api.app import Resources, create_app
from hypnos.interfaces.api.middleware.auth import AuthMiddleware
from hypnos.interfaces.api.middleware.cors import CORSMiddleware
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

from tests.conftest import GRANTEE

STREAM = "ledger"


@pytest.fixture
def reconciler(event_log, uow_factory) -> EventReconciler:
    return EventReconciler(
        event_log,
        uow_factory,
        ApplyEventUseCase(unit_of_work_factory=uow_factory),
        stream=STREAM,
    )


@pytest.fixture
def app(ledger, event_log, uow_factory, reconciler):
    """Falcon ASGI app over in-memory ledger adapters and the fake mirror.

    No Keycloak provider, so X-Principal names the caller.
    """
    manage = ManageDeadLettersUseCase(
        unit_of_work_factory=uow_factory,
        apply_event=ApplyEventUseCase(unit_of_work_factory=uow_factory),
    )
    resources = Resources(
        health=HealthResource(reconciler),
        capabilities=CapabilitiesResource(ledger),
        capability=CapabilityResource(ledger),
        execute=CapabilityExecuteResource(ledger),
        transfer=CapabilityTransferResource(ledger),
        grantee_capabilities=GranteeCapabilitiesResource(ledger),
        ledger_execution=LedgerExecutionResource(ledger),
        ledger_stats=LedgerStatsResource(ledger, event_log),
        mirror_permissions=MirrorPermissionsResource(uow_factory),
        mirror_executions=MirrorExecutionsResource(uow_factory),
        mirror_events=MirrorEventsResource(uow_factory),
        reconciler_status=ReconcilerStatusResource(reconciler),
        dead_letters=DeadLettersResource(manage, STREAM),
    )
    return create_app(
        resources,
        middleware=[CORSMiddleware(["http://localhost:3000"]), AuthMiddleware(None)],
    )


@pytest.fixture
def client(app) -> TestClient:
    """Falcon ASGI test client."""
    return TestClient(app)


@pytest.fixture
def as_grantee() -> dict[str, str]:
    return {"X-Principal": GRANTEE}


@pytest.fixture
def reconcile(reconciler):
    """Run one reconciler pass synchronously between requests."""

    def _run():
        return asyncio.run(reconciler.run_once())

    return _run

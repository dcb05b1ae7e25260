"""Application entry point and composition root."""

import argparse
import asyncio
import logging
import signal
import sys

import falcon.asgi

from hypnos import __version__
from hypnos.application.ledger.capability_ledger import CapabilityLedger
from hypnos.application.reconciler.event_reconciler import EventReconciler
from hypnos.application.use_cases.reconcile.apply_event import ApplyEventUseCase
from hypnos.application.use_cases.reconcile.manage_dead_letters import (
    ManageDeadLettersUseCase,
)
from hypnos.config import Settings, get_settings
from hypnos.domain.exceptions import HypnosError, MalformedEvent
from hypnos.domain.value_objects import DeadLetterStatus
from hypnos.infrastructure.assets.in_memory_bank import InMemoryAssetBank
from hypnos.infrastructure.auth.keycloak_provider import KeycloakProvider
from hypnos.infrastructure.clock.system_clock import SystemClock
from hypnos.infrastructure.events.in_memory_log import InMemoryEventLog
from hypnos.infrastructure.events.jsonl_log import JsonlEventLog
from hypnos.infrastructure.execution import DemoTarget, InProcessCallExecutor
from hypnos.infrastructure.ledger.in_memory_store import InMemoryLedgerStore
from hypnos.infrastructure.persistence.postgres.connection import create_pool
from hypnos.infrastructure.persistence.postgres.unit_of_work import create_uow_factory
from hypnos.interfaces.api.app import Resources, create_app
from hypnos.interfaces.api.middleware.auth import AuthMiddleware
from hypnos.interfaces.api.middleware.cors import CORSMiddleware
from hypnos.interfaces.api.middleware.lifespan import (
    PoolLifespanMiddleware,
    ReconcilerLifespanMiddleware,
)
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

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def create_mirror_pool(settings: Settings):
    return create_pool(
        settings.database_url,
        max_size=settings.database_pool_max_size,
        timeout=settings.database_pool_timeout,
    )


def create_event_log(settings: Settings):
    if settings.event_log_path:
        return JsonlEventLog(settings.event_log_path)
    return InMemoryEventLog()


def create_reconciler(settings: Settings, event_log, uow_factory) -> tuple[
    EventReconciler, ManageDeadLettersUseCase
]:
    """Reconciler for the configured stream plus the operator use case sharing its apply step."""
    apply_event = ApplyEventUseCase(unit_of_work_factory=uow_factory)
    reconciler = EventReconciler(
        event_log,
        uow_factory,
        apply_event,
        stream=settings.reconciler_stream,
        batch_size=settings.reconciler_batch_size,
        max_attempts=settings.reconciler_max_attempts,
        backoff_initial=settings.reconciler_backoff_initial,
        backoff_max=settings.reconciler_backoff_max,
        poll_interval=settings.reconciler_poll_interval,
    )
    manage = ManageDeadLettersUseCase(unit_of_work_factory=uow_factory, apply_event=apply_event)
    return reconciler, manage


def create_hypnos_app() -> falcon.asgi.App:
    """Composition root - build Falcon app with all dependencies."""
    settings = get_settings()
    pool = create_mirror_pool(settings)
    uow_factory = create_uow_factory(pool)

    keycloak = (
        KeycloakProvider(
            server_url=settings.keycloak_url,
            realm=settings.keycloak_realm,
            client_id=settings.keycloak_client_id,
            client_secret=settings.keycloak_client_secret,
        )
        if settings.keycloak_client_secret
        else None
    )

    event_log = create_event_log(settings)
    call_executor = InProcessCallExecutor()
    call_executor.register(settings.demo_target_address, DemoTarget())
    ledger = CapabilityLedger(
        store=InMemoryLedgerStore(),
        event_log=event_log,
        call_executor=call_executor,
        asset_transfer=InMemoryAssetBank(),
        clock=SystemClock(),
    )
    reconciler, manage_dead_letters = create_reconciler(settings, event_log, uow_factory)

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
        dead_letters=DeadLettersResource(manage_dead_letters, settings.reconciler_stream),
    )

    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    middleware = [CORSMiddleware(cors_origins), PoolLifespanMiddleware(pool)]
    if settings.reconciler_enabled:
        middleware.append(ReconcilerLifespanMiddleware(reconciler))
    middleware.append(AuthMiddleware(keycloak))
    return create_app(resources, middleware)


def run_server() -> None:
    """Run uvicorn server."""
    import uvicorn

    settings = get_settings()
    app = create_hypnos_app()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


async def run_reconciler() -> None:
    """Reconcile the JSON-lines log into the mirror until SIGINT/SIGTERM."""
    settings = get_settings()
    if not settings.event_log_path:
        raise SystemExit("EVENT_LOG_PATH must point at the ledger's JSON-lines log")

    pool = create_mirror_pool(settings)
    await pool.open()
    try:
        reconciler, _ = create_reconciler(
            settings, create_event_log(settings), create_uow_factory(pool)
        )
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, reconciler.request_stop)
        await reconciler.run()
    finally:
        await pool.close()


async def run_dead_letters(args: argparse.Namespace) -> int:
    """List, skip or resolve dead letters of the configured stream."""
    settings = get_settings()
    stream = settings.reconciler_stream
    pool = create_mirror_pool(settings)
    await pool.open()
    try:
        _, manage = create_reconciler(
            settings, create_event_log(settings), create_uow_factory(pool)
        )
        if args.skip is not None:
            letter = await manage.skip(stream, args.skip)
            print(f"Skipped {stream}/{letter.sequence}")
        elif args.resolve is not None:
            if not args.record:
                print("--resolve requires --record", file=sys.stderr)
                return 2
            letter = await manage.resolve(stream, args.resolve, args.record)
            print(f"Resolved {stream}/{letter.sequence}")
        else:
            status = DeadLetterStatus(args.status) if args.status else None
            for letter in await manage.list(stream, status):
                print(f"{letter.sequence}\t{letter.status}\t{letter.error}")
    except MalformedEvent as e:
        print(f"Corrected record is malformed: {e.reason}", file=sys.stderr)
        return 1
    except HypnosError as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        await pool.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hypnos", description="Permission-gated execution ledger")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("serve", help="Run the HTTP API")
    sub.add_parser("reconcile", help="Run the reconciler against the JSON-lines event log")
    dead = sub.add_parser("dead-letters", help="List or release dead letters")
    action = dead.add_mutually_exclusive_group()
    action.add_argument("--skip", type=int, metavar="SEQ", help="Skip the dead letter at SEQ")
    action.add_argument(
        "--resolve", type=int, metavar="SEQ", help="Replace the dead letter at SEQ"
    )
    dead.add_argument("--record", help="Corrected event record (JSON) for --resolve")
    dead.add_argument(
        "--status",
        choices=[s.value for s in DeadLetterStatus],
        help="Filter listing by status",
    )
    sub.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    if args.command == "version":
        print(f"Hypnos v{__version__}")
        return 0

    configure_logging(get_settings().log_level)
    if args.command == "serve":
        run_server()
        return 0
    if args.command == "reconcile":
        asyncio.run(run_reconciler())
        return 0
    return asyncio.run(run_dead_letters(args))


if __name__ == "__main__":
    sys.exit(main())

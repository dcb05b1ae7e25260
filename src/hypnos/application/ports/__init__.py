"""Application ports - interfaces for external adapters."""

from hypnos.application.ports.asset_transfer import AssetTransfer
from hypnos.application.ports.call_executor import CallExecutor, CallResult
from hypnos.application.ports.clock import Clock
from hypnos.application.ports.event_log import EventLog, RawEventRecord
from hypnos.application.ports.ledger_store import LedgerStore
from hypnos.application.ports.unit_of_work import MirrorUnitOfWork, MirrorUnitOfWorkFactory

__all__ = [
    "AssetTransfer",
    "CallExecutor",
    "CallResult",
    "Clock",
    "EventLog",
    "LedgerStore",
    "MirrorUnitOfWork",
    "MirrorUnitOfWorkFactory",
    "RawEventRecord",
]

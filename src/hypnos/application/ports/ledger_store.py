"""Ledger store port - authoritative capability and execution state."""

from typing import Protocol

from hypnos.domain.entities import Capability, ExecutionRecord


class LedgerStore(Protocol):
    """Port for the capability ledger's owned state.

    Capabilities are keyed by (grantee, capability id). Writes replace whole
    values, so readers never see a partial update.
    """

    def next_nonce(self) -> int: ...

    def get_capability(self, grantee: str, capability_id: str) -> Capability | None: ...

    def list_capability_ids(self, grantee: str) -> list[str]: ...

    def put_capability(self, capability: Capability) -> None: ...

    def token_spent(self, capability_id: str) -> int: ...

    def add_execution(self, record: ExecutionRecord, token_spent: int | None = None) -> None: ...

    def get_execution(self, execution_id: str) -> ExecutionRecord | None: ...

    def execution_count(self) -> int: ...

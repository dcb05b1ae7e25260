"""In-memory ledger store - the ledger's owned state for one process."""

from hypnos.domain.entities import Capability, ExecutionRecord


class InMemoryLedgerStore:
    """Capabilities keyed by (grantee, id), executions in append order.

    All writes are single dict/list assignments of immutable values, so
    a reader sees either the old or the new value.
    """

    def __init__(self) -> None:
        self._nonce = 0
        self._capabilities: dict[tuple[str, str], Capability] = {}
        self._by_grantee: dict[str, list[str]] = {}
        self._token_spent: dict[str, int] = {}
        self._executions: dict[str, ExecutionRecord] = {}
        self._execution_order: list[str] = []

    def next_nonce(self) -> int:
        self._nonce += 1
        return self._nonce

    def get_capability(self, grantee: str, capability_id: str) -> Capability | None:
        return self._capabilities.get((grantee, capability_id))

    def list_capability_ids(self, grantee: str) -> list[str]:
        return list(self._by_grantee.get(grantee, []))

    def put_capability(self, capability: Capability) -> None:
        key = (capability.grantee, capability.id)
        if key not in self._capabilities:
            self._by_grantee.setdefault(capability.grantee, []).append(capability.id)
        self._capabilities[key] = capability

    def token_spent(self, capability_id: str) -> int:
        return self._token_spent.get(capability_id, 0)

    def add_execution(self, record: ExecutionRecord, token_spent: int | None = None) -> None:
        if record.id in self._executions:
            raise ValueError(f"Duplicate execution id {record.id}")
        if token_spent is not None:
            self._token_spent[record.capability_id] = token_spent
        self._executions[record.id] = record
        self._execution_order.append(record.id)

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        return self._executions.get(execution_id)

    def execution_count(self) -> int:
        return len(self._execution_order)

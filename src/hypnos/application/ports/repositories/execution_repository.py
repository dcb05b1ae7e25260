"""Execution repository port."""

from typing import Protocol

from hypnos.domain.entities import Execution


class ExecutionRepository(Protocol):
    """Port for mirrored executions."""

    async def get_by_id(self, execution_id: str) -> Execution | None: ...

    async def insert_if_absent(self, execution: Execution) -> bool: ...

    async def list(
        self,
        *,
        caller: str | None = None,
        permission_id: str | None = None,
        success: bool | None = None,
        ascending: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Execution]: ...

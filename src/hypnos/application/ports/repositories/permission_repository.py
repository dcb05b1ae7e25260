"""Permission repository port."""

from typing import Protocol

from hypnos.domain.entities import Permission


class PermissionRepository(Protocol):
    """Port for mirrored permissions."""

    async def get_by_id(self, permission_id: str) -> Permission | None: ...

    async def insert_if_absent(self, permission: Permission) -> bool: ...

    async def mark_revoked(
        self, permission_id: str, revoked_at: int, revoked_at_block: int, revoked_tx: str
    ) -> bool: ...

    async def list(
        self,
        *,
        owner: str | None = None,
        active: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Permission]: ...

"""Permission entity - mirror of a capability."""

from dataclasses import dataclass


@dataclass
class Permission:
    """Latest known state of a capability, rebuilt from events."""

    id: str
    owner: str
    target: str
    selector: str
    max_value: int
    max_token_amount: int
    token_asset: str | None
    expiry: int
    active: bool
    granted_at: int
    granted_at_block: int
    granted_tx: str
    revoked_at: int | None = None
    revoked_at_block: int | None = None
    revoked_tx: str | None = None

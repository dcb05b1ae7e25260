"""Capability entity - bounded right to call one target."""

from dataclasses import dataclass

from hypnos.domain.value_objects import Selector


@dataclass(frozen=True)
class Capability:
    """Capability granted to ``grantee``.

    Frozen: revocation produces a new value with ``active=False``; the id never changes.
    ``expiry`` is epoch seconds, 0 means never. ``token_asset`` None means native only.
    """

    id: str
    grantee: str
    target: str
    selector: Selector
    max_value: int
    max_token_amount: int
    token_asset: str | None
    expiry: int
    created_at: int
    active: bool = True

    def is_expired(self, now: int) -> bool:
        """Expired once ``now`` reaches the expiry; 0 never expires."""
        return self.expiry != 0 and now >= self.expiry

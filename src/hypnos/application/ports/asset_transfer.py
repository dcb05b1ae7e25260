"""Asset transfer port - fungible-asset rail."""

from typing import Protocol


class AssetTransfer(Protocol):
    """Port for moving a fungible asset. Returns False (or raises) on failure."""

    async def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> bool: ...

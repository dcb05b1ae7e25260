"""In-memory fungible asset bank."""

import logging

logger = logging.getLogger(__name__)


class InMemoryAssetBank:
    """Balances per (asset, holder). Transfers fail (return False) on insufficient balance."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = {}

    def mint(self, asset: str, holder: str, amount: int) -> None:
        key = (asset.lower(), holder.lower())
        self._balances[key] = self._balances.get(key, 0) + amount

    def balance_of(self, asset: str, holder: str) -> int:
        return self._balances.get((asset.lower(), holder.lower()), 0)

    async def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from sender to recipient."""
        source = (asset.lower(), sender.lower())
        balance = self._balances.get(source, 0)
        if amount <= 0 or balance < amount:
            logger.info(
                "Transfer of %d %s from %s refused: balance %d", amount, asset, sender, balance
            )
            return False
        dest = (asset.lower(), recipient.lower())
        self._balances[source] = balance - amount
        self._balances[dest] = self._balances.get(dest, 0) + amount
        return True

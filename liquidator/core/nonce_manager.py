# /liquidator/core/nonce_manager.py

from liquidator.core.logger import get_logger
from liquidator.core.decorators import retriable_network_call

log = get_logger(__name__)


class NonceManager:
    """Tracks the operator nonce for one run. Only the transaction manager uses it."""

    def __init__(self, w3, address: str):
        self.w3 = w3
        self.address = address
        self.nonce = -1

    @retriable_network_call
    async def sync(self) -> int:
        self.nonce = await self.w3.eth.get_transaction_count(self.address, "pending")
        log.info("NONCE_FROM_RPC", nonce=self.nonce)
        return self.nonce

    async def get(self) -> int:
        if self.nonce < 0:
            await self.sync()
        return self.nonce

    async def bump(self):
        self.nonce += 1
        log.debug("NONCE_BUMPED", nonce=self.nonce)

    def invalidate(self):
        """Forces a resync from the node before the next transaction."""
        self.nonce = -1

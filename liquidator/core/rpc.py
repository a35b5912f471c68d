# /liquidator/core/rpc.py
# Explicit connection context: one async provider and one signer, created at
# process start and passed to every component that needs them.

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3

from liquidator.core.errors import ConfigurationError
from liquidator.core.logger import get_logger
from liquidator.core.decorators import retriable_network_call

log = get_logger(__name__)


class RpcContext:
    def __init__(self, rpc_url: str, private_key: str, chain_id: int, request_timeout: int = 10):
        if not rpc_url:
            raise ConfigurationError("RPC endpoint URL is not configured")
        try:
            self.account: LocalAccount = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid operator private key: {e}") from e
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))

    @property
    def address(self) -> str:
        return self.account.address

    async def initialize(self):
        connected = await self.w3.is_connected()
        if not connected:
            # Not fatal: every run degrades to empty scans until the node is back.
            log.warning("RPC_NODE_UNREACHABLE_AT_STARTUP", url=self.rpc_url)
        else:
            log.info("RPC_CONTEXT_INITIALIZED", operator=self.address, chain_id=self.chain_id)

    @retriable_network_call
    async def block_number(self) -> int:
        return await self.w3.eth.block_number

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def close(self):
        await self.w3.provider.disconnect()
        log.info("RPC_CONTEXT_CLOSED")

# /liquidator/adapters/erc20.py
import asyncio
from typing import Dict, Iterable, Optional

from liquidator.abis import ERC20_ABI
from liquidator.core.decorators import retriable_network_call
from liquidator.core.logger import get_logger
from liquidator.core.models import TokenInfo
from liquidator.core.rpc import RpcContext

log = get_logger(__name__)


class ERC20Adapter:
    """Reads and operator writes against ERC20 tokens."""
    def __init__(self, ctx: RpcContext, tx_manager=None):
        self.ctx = ctx
        self.tx_manager = tx_manager

    def _token(self, address: str):
        return self.ctx.contract(address, ERC20_ABI)

    @retriable_network_call
    async def balance_of(self, token: str, owner: str) -> int:
        return await self._token(token).functions.balanceOf(owner).call()

    @retriable_network_call
    async def get_token_info(self, token: str) -> TokenInfo:
        contract = self._token(token)
        name, symbol, decimals = await asyncio.gather(
            contract.functions.name().call(),
            contract.functions.symbol().call(),
            contract.functions.decimals().call(),
        )
        return TokenInfo(address=contract.address, symbol=symbol, decimals=decimals, name=name)

    async def _send(self, call) -> str:
        if self.tx_manager is None:
            raise RuntimeError("ERC20Adapter was built without a transaction manager")
        tx_params = {'to': call.address, 'data': call._encode_transaction_data(), 'value': 0}
        tx_hash = await self.tx_manager.build_and_send_transaction(tx_params)
        await self.tx_manager.wait_for_confirmation(tx_hash, tx_params)
        return tx_hash

    async def approve(self, token: str, spender: str, amount: int) -> str:
        log.info("TOKEN_APPROVAL", token=token, spender=spender, amount=amount)
        return await self._send(self._token(token).functions.approve(spender, amount))

    async def transfer(self, token: str, to: str, amount: int) -> str:
        log.info("TOKEN_TRANSFER", token=token, to=to, amount=amount)
        return await self._send(self._token(token).functions.transfer(to, amount))


class TokenResolver:
    """
    Address -> TokenInfo lookups. Configured tokens are answered locally;
    anything else is read from chain once and remembered.
    """
    def __init__(self, erc20: Optional[ERC20Adapter], known: Iterable[TokenInfo] = ()):
        self.erc20 = erc20
        self._cache: Dict[str, TokenInfo] = {t.address.lower(): t for t in known}

    async def resolve(self, address: str) -> TokenInfo:
        key = address.lower()
        info = self._cache.get(key)
        if info is None:
            if self.erc20 is None:
                raise LookupError(f"Unknown token {address}")
            info = await self.erc20.get_token_info(address)
            self._cache[key] = info
            log.debug("TOKEN_INFO_RESOLVED", token=address, symbol=info.symbol, decimals=info.decimals)
        return info

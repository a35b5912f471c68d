# /liquidator/adapters/morpho.py
# Read-only access to the lending protocol. Liquidation itself is called by
# the flashloan receiver contract, never from here.
from decimal import Decimal
from typing import Optional

from liquidator.abis import MORPHO_ABI
from liquidator.core.decorators import retriable_network_call
from liquidator.core.errors import ConfigurationError
from liquidator.core.logger import get_logger
from liquidator.core.models import Market
from liquidator.core.rpc import RpcContext

log = get_logger(__name__)

HEALTH_FACTOR_SCALE = Decimal(10**18)


class MorphoReader:
    def __init__(self, ctx: RpcContext, protocol_address: str):
        if not protocol_address:
            raise ConfigurationError("MORPHO_CONTRACT_ADDRESS is not configured")
        self.protocol_address = protocol_address
        self.contract = ctx.contract(protocol_address, MORPHO_ABI)

    @retriable_network_call
    async def health_factor(self, market: Market, borrower: str, block_number: Optional[int] = None) -> Decimal:
        raw = await self.contract.functions.getHealthFactor(market.address, borrower).call(
            block_identifier=block_number or "latest"
        )
        return Decimal(raw) / HEALTH_FACTOR_SCALE

    @retriable_network_call
    async def is_liquidatable(self, market: Market, borrower: str, block_number: Optional[int] = None) -> bool:
        return await self.contract.functions.isLiquidatable(market.address, borrower).call(
            block_identifier=block_number or "latest"
        )


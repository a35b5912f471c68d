# /liquidator/core/gas_estimator.py
# Gas price gate for liquidation execution.

from decimal import Decimal, ROUND_CEILING

from liquidator.core.errors import GasCeilingExceeded
from liquidator.core.logger import get_logger
from liquidator.core.decorators import retriable_network_call

log = get_logger(__name__)

GWEI = Decimal(10**9)


class GasPriceGuard:
    """
    Fetches the network gas price with a safety margin and compares it
    against the configured ceiling.
    """
    def __init__(self, w3, ceiling_wei: int, multiplier: Decimal = Decimal("1.10"), fallback_wei: int = 50 * 10**9):
        self.w3 = w3
        self.ceiling_wei = ceiling_wei
        self.multiplier = multiplier
        self.fallback_wei = fallback_wei
        log.info("GAS_PRICE_GUARD_INITIALIZED", ceiling_gwei=str(Decimal(ceiling_wei) / GWEI), multiplier=str(multiplier))

    @retriable_network_call
    async def _network_gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def current_gas_price(self) -> int:
        """
        Returns the adjusted gas price in wei.

        The network price is bumped by the multiplier (rounded up) to favour
        fast inclusion. When the RPC call fails the configured fallback is
        returned as is.
        """
        try:
            network_price = await self._network_gas_price()
        except Exception as e:
            log.error("GAS_PRICE_FETCH_FAILED_USING_FALLBACK", error=str(e), fallback_gwei=str(Decimal(self.fallback_wei) / GWEI))
            return self.fallback_wei

        adjusted = int((Decimal(network_price) * self.multiplier).to_integral_value(rounding=ROUND_CEILING))
        log.debug("GAS_PRICE_CURRENT", network_gwei=str(Decimal(network_price) / GWEI), adjusted_gwei=str(Decimal(adjusted) / GWEI))
        return adjusted

    def is_acceptable(self, gas_price_wei: int) -> bool:
        return gas_price_wei <= self.ceiling_wei

    async def ensure_below_ceiling(self) -> int:
        """Returns the adjusted gas price, or raises GasCeilingExceeded."""
        gas_price = await self.current_gas_price()
        if not self.is_acceptable(gas_price):
            log.info("GAS_PRICE_TOO_HIGH", gas_price_gwei=str(Decimal(gas_price) / GWEI), ceiling_gwei=str(Decimal(self.ceiling_wei) / GWEI))
            raise GasCeilingExceeded(gas_price, self.ceiling_wei)
        return gas_price

"""Contract ABIs used by the liquidator."""

from liquidator.abis.erc20 import ERC20_ABI
from liquidator.abis.morpho import MORPHO_ABI
from liquidator.abis.flashloan import FLASHLOAN_PROVIDER_ABI, LIQUIDATION_PAYLOAD_TYPES

__all__ = ["ERC20_ABI", "MORPHO_ABI", "FLASHLOAN_PROVIDER_ABI", "LIQUIDATION_PAYLOAD_TYPES"]

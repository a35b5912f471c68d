# /liquidator/adapters/flashloan.py
# - Adapter for the flashloan provider that funds liquidations.
# - The receiver contract decodes the payload in its callback, liquidates,
#   swaps collateral back to the borrowed asset, repays principal + fee and
#   sends the remainder to the profit receiver. All of it reverts together.

from typing import Dict, Any

from eth_abi import encode
from web3 import Web3

from liquidator.abis import FLASHLOAN_PROVIDER_ABI, LIQUIDATION_PAYLOAD_TYPES
from liquidator.core.errors import ConfigurationError
from liquidator.core.logger import get_logger
from liquidator.core.rpc import RpcContext

log = get_logger(__name__)


def encode_liquidation_params(
    market: str,
    borrower: str,
    debt_token: str,
    collateral_token: str,
    debt_amount: int,
    profit_receiver: str,
) -> bytes:
    """ABI-encodes the callback payload in the field order the receiver expects."""
    return encode(
        LIQUIDATION_PAYLOAD_TYPES,
        [
            Web3.to_checksum_address(market),
            Web3.to_checksum_address(borrower),
            Web3.to_checksum_address(debt_token),
            Web3.to_checksum_address(collateral_token),
            debt_amount,
            Web3.to_checksum_address(profit_receiver),
        ],
    )


class FlashloanAdapter:
    """
    Builds and submits ``executeFlashloan`` transactions.
    """
    def __init__(self, ctx: RpcContext, tx_manager, provider_address: str):
        if not provider_address:
            raise ConfigurationError("Flashloan provider address is not configured")
        self.tx_manager = tx_manager
        self.provider_address = Web3.to_checksum_address(provider_address)
        self.provider_contract = ctx.contract(self.provider_address, FLASHLOAN_PROVIDER_ABI)
        log.info("FLASHLOAN_ADAPTER_INITIALIZED", provider_address=self.provider_address)

    def build_flashloan_transaction(self, token: str, amount: int, payload: bytes, gas_price: int, gas_limit: int) -> Dict[str, Any]:
        data = self.provider_contract.functions.executeFlashloan(
            Web3.to_checksum_address(token), amount, payload
        )._encode_transaction_data()
        return {
            'to': self.provider_address,
            'data': data,
            'value': 0,
            'gas': gas_limit,
            'gasPrice': gas_price,
        }

    async def initiate_flashloan(self, tx_params: Dict[str, Any]) -> str:
        """
        Broadcasts a transaction built by ``build_flashloan_transaction``.

        Returns:
            The transaction hash of the flash loan initiation.
        """
        log.info("FLASHLOAN_INITIATED", provider=self.provider_address, gas_price=tx_params.get('gasPrice'))
        return await self.tx_manager.build_and_send_transaction(tx_params)

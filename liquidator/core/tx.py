# /liquidator/core/tx.py
# Signs, broadcasts and confirms operator transactions with sequential nonces.
import asyncio
import time
from typing import Dict, Any

from web3 import Web3
from web3.exceptions import TimeExhausted, ContractLogicError

from liquidator.core.errors import TransactionSubmissionError, OnChainRevertError, ConfirmationTimeout
from liquidator.core.logger import get_logger
from liquidator.core.nonce_manager import NonceManager
from liquidator.core.rpc import RpcContext

log = get_logger(__name__)


class TransactionManager:
    """Manages the full lifecycle of operator transactions."""
    def __init__(self, ctx: RpcContext, confirmations: int = 1, timeout: float = 300, poll_latency: float = 2.0):
        self.ctx = ctx
        self.w3 = ctx.w3
        self.account = ctx.account
        self.address = ctx.address
        self.nonce_manager = NonceManager(self.w3, self.address)
        self.confirmations = confirmations
        self.timeout = timeout
        self.poll_latency = poll_latency
        self._lock = asyncio.Lock()

    async def sync_nonce(self) -> int:
        return await self.nonce_manager.sync()

    async def build_and_send_transaction(self, tx_params: Dict[str, Any]) -> str:
        """Signs and broadcasts a transaction. Returns the 0x-prefixed hash."""
        async with self._lock:
            current_nonce = await self.nonce_manager.get()
            full_tx_params = {
                'from': self.address,
                'nonce': current_nonce,
                'chainId': self.ctx.chain_id,
                **tx_params
            }
            try:
                if 'gas' not in full_tx_params:
                    full_tx_params['gas'] = await self.w3.eth.estimate_gas(full_tx_params)
                if 'gasPrice' not in full_tx_params and 'maxFeePerGas' not in full_tx_params:
                    full_tx_params['gasPrice'] = await self.w3.eth.gas_price

                signed_tx = self.account.sign_transaction(full_tx_params)
                tx_hash = await self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            except Exception as e:
                # The node may or may not have seen the nonce; ask it again next time.
                self.nonce_manager.invalidate()
                log.error("TRANSACTION_BROADCAST_FAILED", nonce=current_nonce, error=str(e), exc_info=True)
                raise TransactionSubmissionError(str(e)) from e

            await self.nonce_manager.bump()
            tx_hash_hex = Web3.to_hex(tx_hash)
            log.info("TRANSACTION_BROADCASTED", tx_hash=tx_hash_hex, nonce=current_nonce)
            return tx_hash_hex

    async def wait_for_confirmation(self, tx_hash: str, tx_params: Dict[str, Any] | None = None) -> Dict[str, Any]:
        """
        Waits for the receipt and the configured number of confirmations.

        Raises:
            OnChainRevertError: the receipt has status 0.
            ConfirmationTimeout: no receipt, or not enough confirmations, in time.
        """
        started = time.monotonic()
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.timeout, poll_latency=self.poll_latency
            )
        except TimeExhausted:
            log.error("TRANSACTION_CONFIRMATION_TIMEOUT", tx_hash=tx_hash, timeout=self.timeout)
            raise ConfirmationTimeout(tx_hash, self.timeout)

        if receipt["status"] == 0:
            reason = await self._revert_reason(tx_params, receipt["blockNumber"])
            log.error("TRANSACTION_REVERTED", tx_hash=tx_hash, reason=reason, gas_used=receipt["gasUsed"])
            raise OnChainRevertError(tx_hash, reason, receipt["gasUsed"])

        target_block = receipt["blockNumber"] + self.confirmations - 1
        while await self.w3.eth.block_number < target_block:
            if time.monotonic() - started > self.timeout:
                log.error("TRANSACTION_CONFIRMATION_TIMEOUT", tx_hash=tx_hash, timeout=self.timeout, confirmations=self.confirmations)
                raise ConfirmationTimeout(tx_hash, self.timeout)
            await asyncio.sleep(self.poll_latency)

        log.info("TRANSACTION_CONFIRMED", tx_hash=tx_hash, block=receipt["blockNumber"], gas_used=receipt["gasUsed"])
        return receipt

    async def _revert_reason(self, tx_params: Dict[str, Any] | None, block_number: int) -> str | None:
        """Replays the call at the receipt block to recover the revert message."""
        if not tx_params:
            return None
        call = {k: v for k, v in tx_params.items() if k in ("from", "to", "data", "value", "gas")}
        call.setdefault("from", self.address)
        try:
            await self.w3.eth.call(call, block_identifier=block_number)
        except ContractLogicError as e:
            return e.message or str(e)
        except Exception as e:
            log.debug("REVERT_REASON_UNAVAILABLE", error=str(e))
            return None
        return None

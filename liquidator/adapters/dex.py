# /liquidator/adapters/dex.py
# Swap quotes and prebuilt swap transactions from a 1inch-style aggregator API.
from decimal import Decimal
from typing import Optional

import aiohttp
from pydantic import BaseModel, ConfigDict

from liquidator.core.decorators import retriable_network_call
from liquidator.core.errors import DataSourceError
from liquidator.core.logger import get_logger

log = get_logger(__name__)

QUOTE_PROTOCOLS = "UNISWAP_V2,UNISWAP_V3,SUSHISWAP,CURVE"


class SwapTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    to: str
    data: str
    value: int = 0
    gas_price: Optional[int] = None
    gas: Optional[int] = None


class SwapQuoteClient:
    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        slippage_pct: Decimal = Decimal("1"),
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = 10,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.slippage_pct = slippage_pct
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=headers)
        return self._session

    @retriable_network_call
    async def _get(self, path: str, params: dict) -> dict:
        async with self._get_session().get(f"{self.api_url}/{path}", params=params) as resp:
            resp.raise_for_status()
            return await resp.json()

    async def estimate_swap_output(self, from_token: str, to_token: str, amount: int) -> Optional[int]:
        """
        Estimated ``to_token`` output for swapping ``amount`` of ``from_token``.

        Returns None when no quote is available; callers decide how to price
        the swap without one.
        """
        if from_token.lower() == to_token.lower():
            return amount
        if amount <= 0:
            return 0
        params = {
            "fromTokenAddress": from_token,
            "toTokenAddress": to_token,
            "amount": str(amount),
            "protocols": QUOTE_PROTOCOLS,
        }
        try:
            data = await self._get("quote", params)
            return int(data["toTokenAmount"])
        except Exception as e:
            log.error("SWAP_QUOTE_FAILED", from_token=from_token, to_token=to_token, amount=amount, error=str(e))
            return None

    async def build_swap_transaction(self, from_token: str, to_token: str, amount: int, recipient: str) -> SwapTransaction:
        params = {
            "fromTokenAddress": from_token,
            "toTokenAddress": to_token,
            "amount": str(amount),
            "fromAddress": recipient,
            "destReceiver": recipient,
            "slippage": str(self.slippage_pct),
            "disableEstimate": "true",
        }
        try:
            data = await self._get("swap", params)
            tx = data["tx"]
            return SwapTransaction(
                to=tx["to"],
                data=tx["data"],
                value=int(tx.get("value") or 0),
                gas_price=int(tx["gasPrice"]) if tx.get("gasPrice") else None,
                gas=int(tx["gas"]) if tx.get("gas") else None,
            )
        except Exception as e:
            log.error("SWAP_TRANSACTION_BUILD_FAILED", from_token=from_token, to_token=to_token, error=str(e))
            raise DataSourceError(f"Could not build swap transaction: {e}") from e

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()

# /liquidator/adapters/oracle.py
from decimal import Decimal
from functools import partial
from typing import Dict, Iterable, Optional
import json

import aiohttp

from liquidator.core.decorators import retriable_network_call
from liquidator.core.errors import DataSourceError
from liquidator.core.logger import get_logger
from liquidator.core.models import PriceTable

log = get_logger(__name__)

NATIVE_PRICE_ID = "ethereum"


class PriceClient:
    """
    USD prices from CoinGecko's ``simple/price`` endpoint, keyed by token address.

    Never raises: when the API is unreachable or returns garbage, the static
    fallback table is served instead and flagged as such.
    """
    def __init__(
        self,
        api_url: str,
        price_ids: Dict[str, str],
        fallback_prices: Dict[str, Decimal],
        fallback_native_price: Decimal = Decimal("1800"),
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = 10,
    ):
        self.api_url = api_url
        self.price_ids = price_ids
        self.fallback_prices = fallback_prices
        self.fallback_native_price = fallback_native_price
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    @retriable_network_call
    async def _fetch(self, ids: Iterable[str]) -> dict:
        params = {"ids": ",".join(sorted(ids)), "vs_currencies": "usd"}
        async with self._get_session().get(self.api_url, params=params) as resp:
            resp.raise_for_status()
            return await resp.json(loads=partial(json.loads, parse_float=Decimal))

    def _parse(self, data: dict) -> PriceTable:
        if not isinstance(data, dict) or NATIVE_PRICE_ID not in data:
            raise DataSourceError("Price response has no native asset price")
        prices: Dict[str, Decimal] = {}
        for coin_id, entry in data.items():
            address = self.price_ids.get(coin_id)
            if address and isinstance(entry, dict) and "usd" in entry:
                prices[address] = Decimal(str(entry["usd"]))
        native_price = Decimal(str(data[NATIVE_PRICE_ID]["usd"]))
        if native_price <= 0:
            raise DataSourceError("Native asset price is not positive")
        return PriceTable(prices=prices, native_price=native_price)

    def fallback_table(self) -> PriceTable:
        return PriceTable(prices=dict(self.fallback_prices), native_price=self.fallback_native_price, is_fallback=True)

    async def get_token_prices(self) -> PriceTable:
        ids = set(self.price_ids) | {NATIVE_PRICE_ID}
        try:
            table = self._parse(await self._fetch(ids))
        except Exception as e:
            log.error("PRICE_FETCH_FAILED_USING_FALLBACK", error=str(e))
            return self.fallback_table()
        log.debug("TOKEN_PRICES_FETCHED", prices={k: str(v) for k, v in table.prices.items()}, native=str(table.native_price))
        return table

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()

# /test/test_oracle.py
# - USD price table from a CoinGecko-style endpoint, with static fallback.

from decimal import Decimal

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from liquidator.adapters.oracle import PriceClient

from conftest import WETH, DAI, USDC

PRICE_IDS = {"ethereum": WETH.address, "dai": DAI.address, "usd-coin": USDC.address}
FALLBACK = {WETH.address: Decimal("1800"), DAI.address: Decimal("1")}


async def serve(payload, seen=None):
    async def simple_price(request):
        if seen is not None:
            seen.append(dict(request.query))
        return web.json_response(payload)

    app = web.Application()
    app.router.add_get("/simple/price", simple_price)
    server = TestServer(app)
    await server.start_server()
    return server


@pytest.mark.asyncio
async def test_prices_are_keyed_by_token_address():
    seen = []
    server = await serve({"ethereum": {"usd": 2000.5}, "dai": {"usd": 1.001}, "usd-coin": {"usd": 1}}, seen)
    client = PriceClient(str(server.make_url("/simple/price")), PRICE_IDS, FALLBACK)
    try:
        table = await client.get_token_prices()
    finally:
        await client.close()
        await server.close()

    assert not table.is_fallback
    assert table.native_price == Decimal("2000.5")
    assert table.get(WETH.address) == Decimal("2000.5")
    assert table.get(DAI.address.lower()) == Decimal("1.001")
    assert table.get(USDC.address) == Decimal("1")
    assert seen[0]["ids"] == "dai,ethereum,usd-coin"
    assert seen[0]["vs_currencies"] == "usd"


@pytest.mark.asyncio
async def test_missing_native_price_serves_fallback():
    server = await serve({"dai": {"usd": 1}})
    client = PriceClient(str(server.make_url("/simple/price")), PRICE_IDS, FALLBACK, fallback_native_price=Decimal("1800"))
    try:
        table = await client.get_token_prices()
    finally:
        await client.close()
        await server.close()

    assert table.is_fallback
    assert table.native_price == Decimal("1800")
    assert table.get(WETH.address) == Decimal("1800")
    assert table.get(USDC.address) is None


@pytest.mark.asyncio
async def test_unreachable_api_serves_fallback():
    client = PriceClient("http://prices.invalid/simple/price", PRICE_IDS, FALLBACK)

    async def unreachable(ids):
        raise ConnectionError("no route to host")

    client._fetch = unreachable
    table = await client.get_token_prices()
    assert table.is_fallback
    assert table.prices == {k.lower(): v for k, v in FALLBACK.items()}


def test_non_positive_prices_are_treated_as_missing():
    client = PriceClient("http://unused", PRICE_IDS, FALLBACK)
    table = client._parse({"ethereum": {"usd": 2000}, "dai": {"usd": 0}})
    assert table.get(DAI.address) is None
    assert table.get(WETH.address) == Decimal("2000")

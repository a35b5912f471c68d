# /test/test_gas_guard.py
# - Adjusted gas price, ceiling comparison and RPC fallback.

import random
from decimal import Decimal

import pytest

from liquidator.adapters.mock import MockW3
from liquidator.core.errors import GasCeilingExceeded
from liquidator.core.gas_estimator import GasPriceGuard

GWEI = 10**9


def guard(network_gwei=30, ceiling_gwei=100, multiplier="1.10", fallback_gwei=50) -> GasPriceGuard:
    return GasPriceGuard(
        MockW3(gas_price=network_gwei * GWEI),
        ceiling_wei=ceiling_gwei * GWEI,
        multiplier=Decimal(multiplier),
        fallback_wei=fallback_gwei * GWEI,
    )


@pytest.mark.asyncio
async def test_network_price_is_bumped_by_multiplier():
    assert await guard(network_gwei=30).current_gas_price() == 33 * GWEI


@pytest.mark.asyncio
async def test_bump_rounds_up():
    g = GasPriceGuard(MockW3(gas_price=7), ceiling_wei=GWEI, multiplier=Decimal("1.10"))
    assert await g.current_gas_price() == 8


@pytest.mark.asyncio
async def test_price_above_ceiling_raises():
    """Network 120 gwei (132 adjusted) against a 100 gwei ceiling -> refused."""
    g = guard(network_gwei=120)
    with pytest.raises(GasCeilingExceeded) as excinfo:
        await g.ensure_below_ceiling()
    assert excinfo.value.gas_price_wei == 132 * GWEI
    assert excinfo.value.ceiling_wei == 100 * GWEI


@pytest.mark.asyncio
async def test_adjusted_price_equal_to_ceiling_is_accepted():
    g = guard(network_gwei=100, multiplier="1")
    assert await g.ensure_below_ceiling() == 100 * GWEI
    assert not g.is_acceptable(100 * GWEI + 1)


@pytest.mark.asyncio
async def test_rpc_failure_returns_fallback_unchanged():
    g = guard(fallback_gwei=50)

    async def unreachable():
        raise ConnectionError("RPC down")

    g._network_gas_price = unreachable
    assert await g.current_gas_price() == 50 * GWEI


@pytest.mark.asyncio
async def test_fallback_is_still_checked_against_ceiling():
    g = guard(ceiling_gwei=40, fallback_gwei=50)

    async def unreachable():
        raise ConnectionError("RPC down")

    g._network_gas_price = unreachable
    with pytest.raises(GasCeilingExceeded):
        await g.ensure_below_ceiling()


@pytest.mark.asyncio
async def test_ceiling_decision_matches_adjusted_price():
    rng = random.Random(7)
    w3 = MockW3()
    g = GasPriceGuard(w3, ceiling_wei=100 * GWEI, multiplier=Decimal("1.10"))
    for _ in range(100):
        network = rng.randint(1, 200 * GWEI)
        w3.eth.set_gas_price(network)
        adjusted = await g.current_gas_price()
        assert adjusted >= network
        assert g.is_acceptable(adjusted) == (adjusted <= 100 * GWEI)

# /test/test_evaluator.py
# - Liquidation sizing (stage A) and net profit (stage B).
# - Uses mock quote clients; no network.

from decimal import Decimal

import pytest

from liquidator.adapters.mock import MockSwapQuoteClient
from liquidator.core.models import (
    LiquidationPlan,
    NotLiquidatable,
    Opportunity,
    PriceTable,
    Unprofitable,
)
from liquidator.strategies.evaluator import ProfitabilityEvaluator, size_liquidation, to_native

from conftest import WETH, DAI, USDC, WBTC, ETHER, make_market, make_position

GAS_ALLOWANCE = ETHER // 100  # 0.01 native


def evaluator(quotes=None, haircut=80, fee_bps=9) -> ProfitabilityEvaluator:
    return ProfitabilityEvaluator(quotes or MockSwapQuoteClient(), GAS_ALLOWANCE, haircut, fee_bps)


# --- Stage A: sizing ---

@pytest.mark.parametrize("health_factor", ["1", "1.0001", "1.5", "42"])
def test_healthy_positions_yield_no_plan(market, price_table, health_factor):
    plan = size_liquidation(make_position(health_factor=health_factor), market, price_table)
    assert isinstance(plan, NotLiquidatable)
    assert plan.reason == "healthy"


def test_threshold_is_per_market(price_table):
    """A 1.02 health factor is liquidatable only where the threshold is above it."""
    position = make_position(health_factor="1.02")
    assert isinstance(size_liquidation(position, make_market(threshold="1"), price_table), NotLiquidatable)
    assert isinstance(size_liquidation(position, make_market(threshold="1.05"), price_table), LiquidationPlan)


def test_half_of_debt_is_covered(market, price_table):
    """healthFactor 0.95, threshold 1.0, closeFactor 50, totalDebt 5000 -> debtToCover 2500."""
    position = make_position(health_factor="0.95", collateral=DAI, debt=DAI, total_debt=5000)
    plan = size_liquidation(position, market, price_table)
    assert plan.debt_to_cover == 2500


@pytest.mark.parametrize("total_debt", [1, 3, 5001, 10**6 + 7, 123456789 * ETHER + 1])
@pytest.mark.parametrize("close_factor", [0, 1, 33, 50, 99, 100])
def test_debt_to_cover_is_floored_and_bounded(price_table, total_debt, close_factor):
    position = make_position(total_debt=total_debt)
    plan = size_liquidation(position, make_market(close_factor=close_factor), price_table)
    assert plan.debt_to_cover == total_debt * close_factor // 100
    assert plan.debt_to_cover <= total_debt
    assert plan.collateral_to_receive >= 0


def test_collateral_accounts_for_prices_and_bonus(market, price_table):
    # 2000 DAI of debt at 2000 USD/WETH is 1 WETH, plus the 8% bonus.
    plan = size_liquidation(make_position(total_debt=4000 * ETHER), market, price_table)
    assert plan.debt_to_cover == 2000 * ETHER
    assert plan.collateral_to_receive == 108 * ETHER // 100


def test_collateral_respects_token_decimals(market, price_table):
    # 5000 USDC (6 decimals) at 40000 USD/WBTC is 0.125 WBTC (8 decimals).
    position = make_position(collateral=WBTC, debt=USDC, total_debt=10_000 * 10**6, total_collateral=30_000_000)
    plan = size_liquidation(position, make_market(bonus=0), price_table)
    assert plan.debt_to_cover == 5000 * 10**6
    assert plan.collateral_to_receive == 12_500_000


def test_collateral_is_monotonic_in_bonus(price_table):
    position = make_position(collateral=WBTC, debt=USDC, total_debt=7_777 * 10**6)
    received = [
        size_liquidation(position, make_market(bonus=bonus), price_table).collateral_to_receive
        for bonus in range(0, 51)
    ]
    assert all(a <= b for a, b in zip(received, received[1:]))
    assert received[-1] > received[0]


def test_missing_price_is_not_liquidatable(market):
    prices = PriceTable(prices={DAI.address: Decimal("1")}, native_price=Decimal("2000"))
    plan = size_liquidation(make_position(), market, prices)
    assert isinstance(plan, NotLiquidatable)
    assert "WETH" in plan.reason


# --- Stage B: profit ---

@pytest.mark.asyncio
async def test_same_token_profit_is_difference(price_table):
    """collateral == debt token, 2700 received for 2500 covered -> 200 before conversion."""
    plan = LiquidationPlan(debt_to_cover=2500, collateral_to_receive=2700, collateral_token=DAI, debt_token=DAI)
    quotes = MockSwapQuoteClient()
    breakdown = await evaluator(quotes).estimate_profit(plan, price_table)
    assert breakdown.token_profit == 200
    assert breakdown.swap_output == 2700
    assert quotes.requests == []


@pytest.mark.asyncio
async def test_same_token_profit_carries_no_gas_allowance(price_table):
    # 200 DAI at 2000 USD/ETH is 0.1 ETH; nothing is swapped, so nothing is charged for gas.
    plan = LiquidationPlan(debt_to_cover=2500 * ETHER, collateral_to_receive=2700 * ETHER, collateral_token=DAI, debt_token=DAI)
    breakdown = await evaluator(fee_bps=0).estimate_profit(plan, price_table)
    assert breakdown.profit_native == ETHER // 10
    assert breakdown.gas_allowance == 0
    assert breakdown.net_profit == breakdown.profit_native


@pytest.mark.asyncio
async def test_profit_after_swap_fee_and_gas(market, price_table):
    quotes = MockSwapQuoteClient({f"{WETH.address}-{DAI.address}": 2150 * ETHER})
    result = await evaluator(quotes).evaluate(make_position(), market, price_table)

    assert isinstance(result, Opportunity)
    assert quotes.requests == [(WETH.address, DAI.address, 108 * ETHER // 100)]
    # (2150 - 2000 - 1.8 fee) DAI = 148.2 DAI = 0.0741 ETH, minus 0.01 ETH gas.
    assert result.estimated_profit == 64_100_000_000_000_000
    assert result.debt_to_cover == 2000 * ETHER
    assert result.market == market.address
    assert result.health_factor == Decimal("0.95")


@pytest.mark.asyncio
async def test_loss_making_liquidation_is_not_an_opportunity(market, price_table):
    quotes = MockSwapQuoteClient({f"{WETH.address}-{DAI.address}": 1990 * ETHER})
    result = await evaluator(quotes).evaluate(make_position(), market, price_table)
    assert isinstance(result, Unprofitable)
    assert result.breakdown.net_profit < 0


@pytest.mark.asyncio
async def test_gas_allowance_can_make_small_profit_unprofitable(market, price_table):
    # 2020 DAI out: 18.2 DAI = 0.0091 ETH net of fee, below the 0.01 ETH gas allowance.
    quotes = MockSwapQuoteClient({f"{WETH.address}-{DAI.address}": 2020 * ETHER})
    result = await evaluator(quotes).evaluate(make_position(), market, price_table)
    assert isinstance(result, Unprofitable)
    assert result.breakdown.profit_native > 0
    assert result.breakdown.net_profit <= 0


@pytest.mark.asyncio
@pytest.mark.parametrize("quotes", [MockSwapQuoteClient(unavailable=True), MockSwapQuoteClient(raises=True)])
async def test_quote_outage_falls_back_to_haircut(price_table, quotes):
    """Quote source unreachable -> evaluation still completes using 80% of the price-implied output."""
    market = make_market(bonus=30)
    result = await evaluator(quotes).evaluate(make_position(), market, price_table)

    # 1.3 WETH is worth 2600 DAI; 80% of that is 2080 DAI against 2000 DAI of debt.
    assert isinstance(result, Opportunity)
    plan = size_liquidation(make_position(), market, price_table)
    breakdown = await evaluator(quotes).estimate_profit(plan, price_table)
    assert breakdown.used_fallback_quote
    assert breakdown.swap_output == 2080 * ETHER


@pytest.mark.asyncio
async def test_quote_outage_with_thin_bonus_is_unprofitable_not_an_error(market, price_table):
    result = await evaluator(MockSwapQuoteClient(unavailable=True)).evaluate(make_position(), market, price_table)
    assert isinstance(result, Unprofitable)
    assert result.breakdown.used_fallback_quote


@pytest.mark.asyncio
async def test_opportunity_requires_liquidatable_position(market, price_table):
    quotes = MockSwapQuoteClient({f"{WETH.address}-{DAI.address}": 10_000 * ETHER})
    result = await evaluator(quotes).evaluate(make_position(health_factor="1.01"), market, price_table)
    assert isinstance(result, NotLiquidatable)
    assert quotes.requests == []


def test_flashloan_fee_rounds_up():
    ev = evaluator(fee_bps=9)
    assert ev.flashloan_fee(10_000) == 9
    assert ev.flashloan_fee(10_001) == 10
    assert ev.flashloan_fee(0) == 0


def test_native_conversion_rounds_down(price_table):
    # 1 USDC unit is 5e8 wei at 2000 USD/ETH.
    assert to_native(1, USDC, price_table) == 500_000_000
    assert to_native(3 * 10**6, USDC, price_table) == 1_500_000_000_000_000
    assert to_native(-1, USDC, price_table) == -500_000_000

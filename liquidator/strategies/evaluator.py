# /liquidator/strategies/evaluator.py
"""
Liquidation sizing and net profit estimation.

All amounts that move funds are integers in the token's smallest unit.
USD prices only enter as dimensionless ratios, converted to 1e18 fixed point
with floor rounding before they touch an amount, so every conversion rounds
against the liquidator and profit is never overstated.
"""
from typing import Union

from liquidator.core.logger import get_logger
from liquidator.core.models import (
    FIXED_POINT_SCALE,
    LiquidationPlan,
    Market,
    NotLiquidatable,
    Opportunity,
    Position,
    PriceTable,
    ProfitBreakdown,
    TokenInfo,
    Unprofitable,
    to_fixed_point,
)

log = get_logger(__name__)

WEI_DECIMALS = 18


def convert_amount(amount: int, from_token: TokenInfo, to_token: TokenInfo, prices: PriceTable) -> int:
    """Value-equivalent amount of ``to_token`` for ``amount`` of ``from_token``."""
    if from_token.same_as(to_token):
        return amount
    ratio = to_fixed_point(prices.get(from_token.address) / prices.get(to_token.address))
    return amount * ratio * 10**to_token.decimals // (10**from_token.decimals * FIXED_POINT_SCALE)


def to_native(amount: int, token: TokenInfo, prices: PriceTable) -> int:
    """Converts a signed token amount to wei of the native asset."""
    ratio = to_fixed_point(prices.get(token.address) / prices.native_price)
    return amount * ratio * 10**WEI_DECIMALS // (10**token.decimals * FIXED_POINT_SCALE)


def size_liquidation(position: Position, market: Market, prices: PriceTable) -> Union[LiquidationPlan, NotLiquidatable]:
    """Stage A: how much debt to repay and how much collateral it earns."""
    params = market.parameters
    if position.health_factor >= params.threshold:
        return NotLiquidatable(reason="healthy")
    if position.total_debt == 0:
        return NotLiquidatable(reason="no debt")
    for token in (position.collateral_token, position.debt_token):
        if prices.get(token.address) is None:
            return NotLiquidatable(reason=f"missing price for {token.symbol}")

    debt_to_cover = position.total_debt * params.close_factor // 100
    base_collateral = convert_amount(debt_to_cover, position.debt_token, position.collateral_token, prices)
    collateral_to_receive = base_collateral * (100 + params.liquidation_bonus) // 100

    return LiquidationPlan(
        debt_to_cover=debt_to_cover,
        collateral_to_receive=collateral_to_receive,
        collateral_token=position.collateral_token,
        debt_token=position.debt_token,
    )


class ProfitabilityEvaluator:
    """
    Turns an at-risk position into an Opportunity when liquidating it is
    expected to be profitable after swap, flashloan fee and gas.

    Args:
        quotes: swap quote client; ``estimate_swap_output`` returns None
            when no quote is available.
        gas_allowance_wei: flat gas cost charged against liquidations that
            need a collateral swap.
        fallback_haircut_pct: share of the price-implied swap output assumed
            when no quote is available.
        flashloan_fee_bps: flashloan premium on the borrowed amount.
    """
    def __init__(self, quotes, gas_allowance_wei: int, fallback_haircut_pct: int = 80, flashloan_fee_bps: int = 9):
        self.quotes = quotes
        self.gas_allowance_wei = gas_allowance_wei
        self.fallback_haircut_pct = fallback_haircut_pct
        self.flashloan_fee_bps = flashloan_fee_bps

    def flashloan_fee(self, amount: int) -> int:
        return -(-amount * self.flashloan_fee_bps // 10_000)

    async def _swap_output(self, plan: LiquidationPlan, prices: PriceTable) -> tuple[int, bool]:
        if plan.collateral_token.same_as(plan.debt_token):
            return plan.collateral_to_receive, False
        try:
            quoted = await self.quotes.estimate_swap_output(
                plan.collateral_token.address, plan.debt_token.address, plan.collateral_to_receive
            )
        except Exception as e:
            log.error("SWAP_QUOTE_FAILED", error=str(e))
            quoted = None
        if quoted is not None:
            return quoted, False
        implied = convert_amount(plan.collateral_to_receive, plan.collateral_token, plan.debt_token, prices)
        fallback = implied * self.fallback_haircut_pct // 100
        log.warning("SWAP_QUOTE_UNAVAILABLE_USING_HAIRCUT", haircut_pct=self.fallback_haircut_pct, estimate=fallback)
        return fallback, True

    async def estimate_profit(self, plan: LiquidationPlan, prices: PriceTable) -> ProfitBreakdown:
        """Stage B: net profit in wei of the native asset."""
        swap_output, used_fallback = await self._swap_output(plan, prices)
        token_profit = swap_output - plan.debt_to_cover
        fee = self.flashloan_fee(plan.debt_to_cover)
        profit_native = to_native(token_profit - fee, plan.debt_token, prices)
        # Gas allowance applies to the swap path only.
        gas_allowance = 0 if plan.collateral_token.same_as(plan.debt_token) else self.gas_allowance_wei
        return ProfitBreakdown(
            swap_output=swap_output,
            used_fallback_quote=used_fallback,
            token_profit=token_profit,
            flashloan_fee=fee,
            profit_native=profit_native,
            gas_allowance=gas_allowance,
            net_profit=profit_native - gas_allowance,
        )

    async def evaluate(self, position: Position, market: Market, prices: PriceTable) -> Union[Opportunity, NotLiquidatable, Unprofitable]:
        plan = size_liquidation(position, market, prices)
        if isinstance(plan, NotLiquidatable):
            log.debug("POSITION_NOT_LIQUIDATABLE", market=market.name, account=position.account, reason=plan.reason)
            return plan

        breakdown = await self.estimate_profit(plan, prices)
        if breakdown.net_profit <= 0:
            log.debug("LIQUIDATION_UNPROFITABLE", market=market.name, account=position.account, net_profit=breakdown.net_profit)
            return Unprofitable(plan=plan, breakdown=breakdown)

        log.info(
            "LIQUIDATION_OPPORTUNITY_FOUND",
            market=market.name,
            account=position.account,
            health_factor=str(position.health_factor),
            debt_to_cover=plan.debt_to_cover,
            collateral_to_receive=plan.collateral_to_receive,
            net_profit_wei=breakdown.net_profit,
            fallback_quote=breakdown.used_fallback_quote,
        )
        return Opportunity(
            market=market.address,
            market_name=market.name,
            account=position.account,
            collateral_token=plan.collateral_token,
            debt_token=plan.debt_token,
            debt_to_cover=plan.debt_to_cover,
            collateral_to_receive=plan.collateral_to_receive,
            estimated_profit=breakdown.net_profit,
            health_factor=position.health_factor,
        )

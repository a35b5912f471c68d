# /liquidator/core/models.py
# Immutable domain values. Nothing here holds a provider or contract handle;
# components take a Market and do their own reads.
from decimal import Decimal, ROUND_FLOOR
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIXED_POINT_SCALE = 10**18


def to_fixed_point(ratio: Decimal) -> int:
    """Converts a dimensionless ratio to a 1e18 fixed-point integer, rounding down."""
    return int((ratio * FIXED_POINT_SCALE).to_integral_value(rounding=ROUND_FLOOR))


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class LiquidationParameters(_Frozen):
    threshold: Decimal = Decimal("1")
    close_factor: int = Field(default=50, ge=0, le=100)
    liquidation_bonus: int = Field(default=8, ge=0)


class Market(_Frozen):
    address: str
    name: str
    parameters: LiquidationParameters = Field(default_factory=LiquidationParameters)


class TokenInfo(_Frozen):
    address: str
    symbol: str
    decimals: int = Field(ge=0, le=77)
    name: Optional[str] = None

    def same_as(self, other: "TokenInfo") -> bool:
        return self.address.lower() == other.address.lower()


class Position(_Frozen):
    account: str
    health_factor: Decimal
    collateral_token: TokenInfo
    debt_token: TokenInfo
    total_debt: int = Field(ge=0)
    total_collateral: int = Field(ge=0)


class LiquidationPlan(_Frozen):
    debt_to_cover: int = Field(ge=0)
    collateral_to_receive: int = Field(ge=0)
    collateral_token: TokenInfo
    debt_token: TokenInfo


class NotLiquidatable(_Frozen):
    reason: str


class ProfitBreakdown(_Frozen):
    """Stage B of an evaluation. Token amounts are in debt-token units."""
    swap_output: int
    used_fallback_quote: bool = False
    token_profit: int  # swap_output - debt_to_cover
    flashloan_fee: int = 0
    profit_native: int  # (token_profit - flashloan_fee) in wei
    gas_allowance: int = 0
    net_profit: int  # wei


class Unprofitable(_Frozen):
    plan: LiquidationPlan
    breakdown: ProfitBreakdown


class Opportunity(_Frozen):
    market: str
    market_name: str
    account: str
    collateral_token: TokenInfo
    debt_token: TokenInfo
    debt_to_cover: int
    collateral_to_receive: int
    estimated_profit: int  # signed, wei of the native asset
    health_factor: Decimal


class PriceTable(_Frozen):
    """USD prices keyed by token address, plus the native asset reference price."""
    prices: Dict[str, Decimal]
    native_price: Decimal
    is_fallback: bool = False

    @field_validator("prices")
    @classmethod
    def _lowercase_keys(cls, v: Dict[str, Decimal]) -> Dict[str, Decimal]:
        return {k.lower(): Decimal(p) for k, p in v.items()}

    def get(self, address: str) -> Optional[Decimal]:
        price = self.prices.get(address.lower())
        if price is None or price <= 0:
            return None
        return price


class ExecutionStatus(str, Enum):
    SKIPPED = "skipped"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class ExecutionResult(_Frozen):
    opportunity: Opportunity
    status: ExecutionStatus
    tx_hash: Optional[str] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None


class RunReport(_Frozen):
    run_id: int
    block_number: Optional[int] = None
    markets_scanned: int = 0
    positions_at_risk: int = 0
    opportunities: int = 0
    selected: int = 0
    results: List[ExecutionResult] = Field(default_factory=list)

    @property
    def confirmed(self) -> int:
        return sum(1 for r in self.results if r.status is ExecutionStatus.CONFIRMED)

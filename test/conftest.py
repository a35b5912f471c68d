# /test/conftest.py
# Shared tokens, markets and prices for the liquidation pipeline tests.

from decimal import Decimal

import pytest

from liquidator.core.models import Market, LiquidationParameters, TokenInfo, Position, PriceTable

WETH = TokenInfo(address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", symbol="WETH", decimals=18)
DAI = TokenInfo(address="0x6B175474E89094C44Da98b954EedeAC495271d0F", symbol="DAI", decimals=18)
USDC = TokenInfo(address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", symbol="USDC", decimals=6)
WBTC = TokenInfo(address="0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", symbol="WBTC", decimals=8)

PRICES = {
    WETH.address: Decimal("2000"),
    DAI.address: Decimal("1"),
    USDC.address: Decimal("1"),
    WBTC.address: Decimal("40000"),
}
NATIVE_PRICE = Decimal("2000")

BORROWER_A = "0x1234567890123456789012345678901234567890"
BORROWER_B = "0x2345678901234567890123456789012345678901"
BORROWER_C = "0x3456789012345678901234567890123456789012"

PROFIT_RECEIVER = "0x00000000000000000000000000000000000000be"

ETHER = 10**18

VALID_SETTINGS = dict(
    ETHEREUM_RPC_URL="http://127.0.0.1:8545",
    PRIVATE_KEY="0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318",
    MORPHO_CONTRACT_ADDRESS="0x777777c9898D384F785Ee44Acfe945efDFf5f3E0",
    AAVE_LENDING_POOL_ADDRESS="0x7d2768dE32b0b80b7a3454c06BdAc94A69DDc7A9",
    PROFIT_RECEIVER_ADDRESS="0x00000000000000000000000000000000000000be",
)


def make_market(address="0xB5FE3D9C500eA67E4028dB19e9e8a42DF3A3A5e5", name="Morpho-Aave v2 WETH",
                threshold="1", close_factor=50, bonus=8) -> Market:
    return Market(
        address=address,
        name=name,
        parameters=LiquidationParameters(threshold=Decimal(threshold), close_factor=close_factor, liquidation_bonus=bonus),
    )


def make_position(health_factor="0.95", collateral=WETH, debt=DAI, total_debt=4000 * ETHER,
                  total_collateral=3 * ETHER, account=BORROWER_A) -> Position:
    return Position(
        account=account,
        health_factor=Decimal(health_factor),
        collateral_token=collateral,
        debt_token=debt,
        total_debt=total_debt,
        total_collateral=total_collateral,
    )


@pytest.fixture
def market() -> Market:
    return make_market()


@pytest.fixture
def price_table() -> PriceTable:
    return PriceTable(prices=PRICES, native_price=NATIVE_PRICE)

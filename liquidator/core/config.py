# /liquidator/core/config.py
import sys
from decimal import Decimal
from typing import List, Dict, Any, Literal

from pydantic import SecretStr, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GWEI = 10**9
WEI_PER_ETHER = 10**18

DEFAULT_MARKETS: List[Dict[str, Any]] = [
    {"address": "0xB5FE3D9C500eA67E4028dB19e9e8a42DF3A3A5e5", "name": "Morpho-Aave v2 WETH"},
    {"address": "0x9A56F30fF04884Ab7F539378e3B3AAe8A2F27f50", "name": "Morpho-Aave v2 USDC"},
    {"address": "0xEF5699654Db9bdd8F3b4cF46499A2ce36B21e34b", "name": "Morpho-Compound DAI"},
    {"address": "0x2E4B70D0eF83D551cB87dC40e2Be97aA14F3fDc5", "name": "Morpho-Compound USDT"},
]

# CoinGecko id -> mainnet token address
DEFAULT_PRICE_IDS: Dict[str, str] = {
    "ethereum": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "dai": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
    "usd-coin": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    "tether": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    "wrapped-bitcoin": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
    "aave": "0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9",
    "compound-governance-token": "0xc00e94Cb662C3520282E6f5717214004A7f26888",
}

DEFAULT_FALLBACK_PRICES: Dict[str, Decimal] = {
    "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2": Decimal("1800"),
    "0x6B175474E89094C44Da98b954EedeAC495271d0F": Decimal("1"),
    "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48": Decimal("1"),
    "0xdAC17F958D2ee523a2206206994597C13D831ec7": Decimal("1"),
    "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599": Decimal("27000"),
}

DEFAULT_TOKENS: List[Dict[str, Any]] = [
    {"address": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", "symbol": "WETH", "decimals": 18},
    {"address": "0x6B175474E89094C44Da98b954EedeAC495271d0F", "symbol": "DAI", "decimals": 18},
    {"address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "symbol": "USDC", "decimals": 6},
    {"address": "0xdAC17F958D2ee523a2206206994597C13D831ec7", "symbol": "USDT", "decimals": 6},
    {"address": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", "symbol": "WBTC", "decimals": 8},
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Operator & chain
    ETHEREUM_RPC_URL: str | None = None
    PRIVATE_KEY: SecretStr | None = None
    CHAIN_ID: int = 1

    # Contracts
    MORPHO_CONTRACT_ADDRESS: str | None = None
    AAVE_LENDING_POOL_ADDRESS: str | None = None  # flashloan provider
    PROFIT_RECEIVER_ADDRESS: str | None = None

    # Cadence & selection
    CHECK_INTERVAL_MINUTES: int = Field(default=60, gt=0)
    MAX_LIQUIDATIONS_PER_RUN: int = Field(default=3, ge=0)
    MIN_PROFIT_THRESHOLD: Decimal = Decimal("0.1")  # native units

    # Gas
    MAX_GAS_PRICE: Decimal = Decimal("100")  # gwei
    GAS_PRICE_MULTIPLIER: Decimal = Decimal("1.10")
    FALLBACK_GAS_PRICE: Decimal = Decimal("50")  # gwei
    GAS_LIMIT: int = 3_000_000
    GAS_COST_ALLOWANCE: Decimal = Decimal("0.01")  # native units

    # Profit heuristics
    FALLBACK_SWAP_HAIRCUT_PCT: int = Field(default=80, ge=0, le=100)
    FLASHLOAN_FEE_BPS: int = Field(default=9, ge=0)

    # Confirmation
    CONFIRMATIONS: int = Field(default=1, ge=1)
    CONFIRMATION_TIMEOUT_SECONDS: int = 300

    # External data sources
    PRICE_API_URL: str = "https://api.coingecko.com/api/v3/simple/price"
    PRICE_IDS: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PRICE_IDS))
    SWAP_API_URL: str = "https://api.1inch.io/v5.0/1"
    SWAP_API_KEY: SecretStr | None = None
    SWAP_SLIPPAGE_PCT: Decimal = Decimal("1")
    HTTP_TIMEOUT_SECONDS: int = 10
    POSITION_INDEXER_URL: str | None = None
    POSITIONS_FILE: str | None = None
    MARKETS: List[Dict[str, Any]] = Field(default_factory=lambda: list(DEFAULT_MARKETS))
    TOKENS: List[Dict[str, Any]] = Field(default_factory=lambda: list(DEFAULT_TOKENS))

    # Operational
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    SENTRY_DSN: SecretStr | None = None
    HEALTH_PORT: int = 8080

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @property
    def check_interval_seconds(self) -> int:
        return self.CHECK_INTERVAL_MINUTES * 60

    @property
    def max_gas_price_wei(self) -> int:
        return int(self.MAX_GAS_PRICE * GWEI)

    @property
    def fallback_gas_price_wei(self) -> int:
        return int(self.FALLBACK_GAS_PRICE * GWEI)

    @property
    def min_profit_wei(self) -> int:
        return int(self.MIN_PROFIT_THRESHOLD * WEI_PER_ETHER)

    @property
    def gas_cost_allowance_wei(self) -> int:
        return int(self.GAS_COST_ALLOWANCE * WEI_PER_ETHER)


try:
    settings = Settings()
except ValidationError as e:
    # Logging is configured from these settings, so it is not available yet.
    print("FAILED_TO_LOAD_SETTINGS", e, file=sys.stderr)
    sys.exit(1)

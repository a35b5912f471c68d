# /liquidator/adapters/markets.py
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from liquidator.core.errors import ConfigurationError
from liquidator.core.logger import get_logger
from liquidator.core.models import Market, LiquidationParameters

log = get_logger(__name__)


class MarketRegistry:
    """Configured lending markets and their liquidation parameters."""

    def __init__(self, protocol_address: str | None, markets: Iterable[Dict[str, Any]]):
        if not protocol_address:
            raise ConfigurationError("MORPHO_CONTRACT_ADDRESS is not configured")
        self.protocol_address = protocol_address
        try:
            self._markets = tuple(self._build(m) for m in markets)
        except (ValidationError, KeyError) as e:
            raise ConfigurationError(f"Invalid market configuration: {e}") from e

    @staticmethod
    def _build(entry: Dict[str, Any]) -> Market:
        params = entry.get("parameters") or {
            k: entry[k] for k in ("threshold", "close_factor", "liquidation_bonus") if k in entry
        }
        return Market(
            address=entry["address"],
            name=entry.get("name", entry["address"]),
            parameters=LiquidationParameters(**params),
        )

    def load(self) -> List[Market]:
        log.info("MARKETS_LOADED", count=len(self._markets))
        return list(self._markets)

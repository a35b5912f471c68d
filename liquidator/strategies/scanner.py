# /liquidator/strategies/scanner.py
import asyncio
from typing import List, Optional

from liquidator.adapters.erc20 import TokenResolver
from liquidator.adapters.positions import PositionSource, PositionCandidate
from liquidator.core.logger import get_logger
from liquidator.core.models import Market, Position

log = get_logger(__name__)


class PositionScanner:
    """
    Produces the at-risk positions of one market at one block.

    Candidates come from the position source; health factors and the
    liquidatable flag are re-read from chain at ``block_number`` so every
    position in a run reflects the same snapshot. A candidate whose checks
    fail is logged and dropped; a failing position source empties the market
    instead of failing the run.
    """
    def __init__(self, source: PositionSource, protocol, tokens: TokenResolver):
        self.source = source
        self.protocol = protocol
        self.tokens = tokens

    async def scan(self, market: Market, block_number: Optional[int] = None) -> List[Position]:
        log.debug("MARKET_SCAN_STARTED", market=market.name, block=block_number)
        try:
            candidates = await self.source.fetch_candidates(market)
        except Exception as e:
            log.error("MARKET_SCAN_FAILED", market=market.name, error=str(e))
            return []

        results = await asyncio.gather(*(self._confirm(market, c, block_number) for c in candidates))
        positions = [p for p in results if p is not None]
        log.debug("MARKET_SCAN_FINISHED", market=market.name, candidates=len(candidates), at_risk=len(positions))
        return positions

    async def _confirm(self, market: Market, candidate: PositionCandidate, block_number: Optional[int]) -> Optional[Position]:
        if candidate.total_debt == 0:
            return None
        try:
            return await self._check(market, candidate, block_number)
        except Exception as e:
            log.warning("POSITION_CHECK_FAILED", market=market.name, account=candidate.account, error=str(e))
            return None

    async def _check(self, market: Market, candidate: PositionCandidate, block_number: Optional[int]) -> Optional[Position]:
        health_factor = await self.protocol.health_factor(market, candidate.account, block_number)
        if health_factor >= market.parameters.threshold:
            return None
        if not await self.protocol.is_liquidatable(market, candidate.account, block_number):
            log.debug("POSITION_NOT_LIQUIDATABLE_ON_CHAIN", market=market.name, account=candidate.account, health_factor=str(health_factor))
            return None

        collateral_token, debt_token = await asyncio.gather(
            self.tokens.resolve(candidate.collateral_token),
            self.tokens.resolve(candidate.debt_token),
        )
        return Position(
            account=candidate.account,
            health_factor=health_factor,
            collateral_token=collateral_token,
            debt_token=debt_token,
            total_debt=candidate.total_debt,
            total_collateral=candidate.total_collateral,
        )

# /liquidator/strategies/liquidation.py
# One pipeline run: markets -> at-risk positions -> opportunities -> batch -> execution.

import asyncio
from typing import List

from liquidator.adapters.markets import MarketRegistry
from liquidator.core.logger import get_logger, bind_run, RUNS_STARTED, OPPORTUNITIES_FOUND
from liquidator.core.models import Opportunity, RunReport
from liquidator.strategies.base import AbstractStrategy
from liquidator.strategies.evaluator import ProfitabilityEvaluator
from liquidator.strategies.executor import LiquidationExecutor
from liquidator.strategies.scanner import PositionScanner
from liquidator.strategies.selector import select_opportunities

log = get_logger(__name__)


class LiquidationStrategy(AbstractStrategy):
    """
    Finds and executes profitable liquidations on every configured market.

    Markets are scanned concurrently against one pinned block; execution is
    strictly sequential in ranked order. Opportunities live only for the run
    that found them.
    """
    def __init__(
        self,
        registry: MarketRegistry,
        scanner: PositionScanner,
        evaluator: ProfitabilityEvaluator,
        prices,
        executor: LiquidationExecutor,
        chain,
        tx_manager,
        min_profit_wei: int,
        max_liquidations: int = 3,
    ):
        self.registry = registry
        self.scanner = scanner
        self.evaluator = evaluator
        self.prices = prices
        self.executor = executor
        self.chain = chain
        self.tx_manager = tx_manager
        self.min_profit_wei = min_profit_wei
        self.max_liquidations = max_liquidations
        self._run_id = 0
        log.info("LIQUIDATION_STRATEGY_INITIALIZED", min_profit_wei=min_profit_wei, max_liquidations=max_liquidations)

    async def _pin_block(self):
        try:
            return await self.chain.block_number()
        except Exception as e:
            log.error("BLOCK_NUMBER_UNAVAILABLE_SCANNING_LATEST", error=str(e))
            return None

    async def find_opportunities(self, block_number) -> tuple[List[Opportunity], int, int]:
        markets = self.registry.load()
        prices = await self.prices.get_token_prices()
        if prices.is_fallback:
            log.warning("USING_FALLBACK_PRICE_TABLE")

        scans = await asyncio.gather(*(self.scanner.scan(m, block_number) for m in markets))
        pairs = [(m, p) for m, positions in zip(markets, scans) for p in positions]
        evaluations = await asyncio.gather(*(self.evaluator.evaluate(p, m, prices) for m, p in pairs))

        opportunities = [e for e in evaluations if isinstance(e, Opportunity)]
        OPPORTUNITIES_FOUND.inc(len(opportunities))
        return opportunities, len(markets), len(pairs)

    async def run(self) -> RunReport:
        self._run_id += 1
        run_id = self._run_id
        bind_run(run_id)
        RUNS_STARTED.inc()
        log.info("LIQUIDATION_RUN_STARTED")

        try:
            await self.tx_manager.sync_nonce()
        except Exception as e:
            # Resynced lazily before the first transaction.
            log.error("NONCE_SYNC_FAILED", error=str(e))

        block_number = await self._pin_block()
        opportunities, markets, positions = await self.find_opportunities(block_number)
        batch = select_opportunities(opportunities, self.min_profit_wei, self.max_liquidations)
        log.info(
            "LIQUIDATION_SCAN_COMPLETE",
            block=block_number, markets=markets, positions_at_risk=positions,
            opportunities=len(opportunities), selected=len(batch),
        )

        results = []
        if not batch:
            log.info("NO_PROFITABLE_LIQUIDATIONS")
        else:
            results = await self.executor.execute_batch(batch)

        report = RunReport(
            run_id=run_id,
            block_number=block_number,
            markets_scanned=markets,
            positions_at_risk=positions,
            opportunities=len(opportunities),
            selected=len(batch),
            results=results,
        )
        log.info("LIQUIDATION_RUN_FINISHED", confirmed=report.confirmed, attempted=len(results))
        return report

    async def close(self):
        await self.prices.close()
        await self.evaluator.quotes.close()
        await self.scanner.source.close()

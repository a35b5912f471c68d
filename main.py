# /main.py
# Entry point: validates configuration, wires the pipeline once and hands it
# to the scheduler. Only configuration errors terminate the process.
import asyncio
import signal
import sys

from aiohttp import web
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from liquidator.core.config import settings, Settings, DEFAULT_FALLBACK_PRICES
from liquidator.core.config_validator import validate as validate_config
from liquidator.core.errors import ConfigurationError, DataSourceError
from liquidator.core.logger import get_logger
from liquidator.core.rpc import RpcContext
from liquidator.core.tx import TransactionManager
from liquidator.core.gas_estimator import GasPriceGuard
from liquidator.core.models import TokenInfo
from liquidator.core.scheduler import Scheduler
from liquidator.adapters.oracle import PriceClient
from liquidator.adapters.dex import SwapQuoteClient
from liquidator.adapters.erc20 import ERC20Adapter, TokenResolver
from liquidator.adapters.morpho import MorphoReader
from liquidator.adapters.flashloan import FlashloanAdapter
from liquidator.adapters.markets import MarketRegistry
from liquidator.adapters.positions import (
    PositionSource,
    NullPositionSource,
    StaticPositionSource,
    SubgraphPositionSource,
)
from liquidator.strategies.scanner import PositionScanner
from liquidator.strategies.evaluator import ProfitabilityEvaluator
from liquidator.strategies.executor import LiquidationExecutor
from liquidator.strategies.liquidation import LiquidationStrategy

log = get_logger("liquidator.main")


def build_position_source(cfg: Settings) -> PositionSource:
    if cfg.POSITION_INDEXER_URL:
        log.info("POSITION_SOURCE_SUBGRAPH", url=cfg.POSITION_INDEXER_URL)
        return SubgraphPositionSource(cfg.POSITION_INDEXER_URL, timeout=cfg.HTTP_TIMEOUT_SECONDS)
    if cfg.POSITIONS_FILE:
        log.info("POSITION_SOURCE_STATIC_FILE", path=cfg.POSITIONS_FILE)
        try:
            return StaticPositionSource.from_file(cfg.POSITIONS_FILE)
        except (OSError, ValueError, DataSourceError) as e:
            raise ConfigurationError(f"Cannot load POSITIONS_FILE: {e}") from e
    log.warning("POSITION_SOURCE_NOT_CONFIGURED_NO_POSITIONS_WILL_BE_FOUND")
    return NullPositionSource()


def build_strategy(cfg: Settings, ctx: RpcContext) -> LiquidationStrategy:
    registry = MarketRegistry(cfg.MORPHO_CONTRACT_ADDRESS, cfg.MARKETS)
    tx_manager = TransactionManager(ctx, confirmations=cfg.CONFIRMATIONS, timeout=cfg.CONFIRMATION_TIMEOUT_SECONDS)
    gas_guard = GasPriceGuard(
        ctx.w3,
        ceiling_wei=cfg.max_gas_price_wei,
        multiplier=cfg.GAS_PRICE_MULTIPLIER,
        fallback_wei=cfg.fallback_gas_price_wei,
    )
    tokens = TokenResolver(ERC20Adapter(ctx), [TokenInfo(**t) for t in cfg.TOKENS])
    scanner = PositionScanner(build_position_source(cfg), MorphoReader(ctx, cfg.MORPHO_CONTRACT_ADDRESS), tokens)
    prices = PriceClient(
        cfg.PRICE_API_URL,
        cfg.PRICE_IDS,
        DEFAULT_FALLBACK_PRICES,
        fallback_native_price=DEFAULT_FALLBACK_PRICES["0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"],
        timeout=cfg.HTTP_TIMEOUT_SECONDS,
    )
    quotes = SwapQuoteClient(
        cfg.SWAP_API_URL,
        api_key=cfg.SWAP_API_KEY.get_secret_value() if cfg.SWAP_API_KEY else None,
        slippage_pct=cfg.SWAP_SLIPPAGE_PCT,
        timeout=cfg.HTTP_TIMEOUT_SECONDS,
    )
    evaluator = ProfitabilityEvaluator(
        quotes,
        gas_allowance_wei=cfg.gas_cost_allowance_wei,
        fallback_haircut_pct=cfg.FALLBACK_SWAP_HAIRCUT_PCT,
        flashloan_fee_bps=cfg.FLASHLOAN_FEE_BPS,
    )
    executor = LiquidationExecutor(
        tx_manager,
        FlashloanAdapter(ctx, tx_manager, cfg.AAVE_LENDING_POOL_ADDRESS),
        gas_guard,
        profit_receiver=cfg.PROFIT_RECEIVER_ADDRESS,
        gas_limit=cfg.GAS_LIMIT,
    )
    return LiquidationStrategy(
        registry, scanner, evaluator, prices, executor,
        chain=ctx,
        tx_manager=tx_manager,
        min_profit_wei=cfg.min_profit_wei,
        max_liquidations=cfg.MAX_LIQUIDATIONS_PER_RUN,
    )


def build_health_app(scheduler: Scheduler) -> web.Application:
    async def healthz(request):
        """Provides a JSON health status for the service."""
        return web.json_response({
            "status": "ok",
            "run_in_progress": scheduler.is_running,
            "runs_started": scheduler.runs_started,
            "ticks_skipped": scheduler.ticks_skipped,
        })

    async def metrics(request):
        return web.Response(body=generate_latest(), headers={"Content-Type": CONTENT_TYPE_LATEST})

    app = web.Application()
    app.add_routes([web.get("/healthz", healthz), web.get("/metrics", metrics)])
    return app


async def main() -> int:
    try:
        validate_config(settings)
        ctx = RpcContext(settings.ETHEREUM_RPC_URL, settings.PRIVATE_KEY.get_secret_value(), settings.CHAIN_ID)
        strategy = build_strategy(settings, ctx)
    except ConfigurationError as e:
        log.critical("STARTUP_CONFIGURATION_ERROR", error=str(e))
        return 1

    log.info(
        "LIQUIDATION_BOT_STARTING",
        interval_minutes=settings.CHECK_INTERVAL_MINUTES,
        max_liquidations=settings.MAX_LIQUIDATIONS_PER_RUN,
        min_profit=str(settings.MIN_PROFIT_THRESHOLD),
        max_gas_gwei=str(settings.MAX_GAS_PRICE),
        operator=ctx.address,
    )
    await ctx.initialize()

    scheduler = Scheduler(strategy.run, settings.check_interval_seconds)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, scheduler.stop)

    runner = web.AppRunner(build_health_app(scheduler))
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.HEALTH_PORT)
    await site.start()
    log.info("HEALTHCHECK_SERVER_STARTED", port=settings.HEALTH_PORT)

    try:
        await scheduler.run_forever()
    finally:
        await strategy.close()
        await ctx.close()
        await runner.cleanup()
        log.warning("SYSTEM_SHUTDOWN_COMPLETE")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass

# /liquidator/strategies/executor.py
# Sequential, flashloan-funded execution of a ranked opportunity batch.

from typing import List, Sequence

from liquidator.adapters.flashloan import encode_liquidation_params
from liquidator.core.errors import (
    GasCeilingExceeded,
    OnChainRevertError,
    ConfirmationTimeout,
)
from liquidator.core.logger import get_logger, LIQUIDATIONS
from liquidator.core.models import ExecutionResult, ExecutionStatus, Opportunity

log = get_logger(__name__)


class LiquidationExecutor:
    """
    Executes opportunities one at a time, in the order given.

    Each attempt goes Selected -> GasChecked -> Submitted and ends Confirmed,
    Reverted or TimedOut (or Skipped at the gas gate). A failed attempt is
    reported and the next opportunity proceeds; nothing is retried within
    the run.
    """
    def __init__(self, tx_manager, flashloan, gas_guard, profit_receiver: str, gas_limit: int = 3_000_000):
        self.tx_manager = tx_manager
        self.flashloan = flashloan
        self.gas_guard = gas_guard
        self.profit_receiver = profit_receiver
        self.gas_limit = gas_limit

    async def execute_batch(self, opportunities: Sequence[Opportunity]) -> List[ExecutionResult]:
        results = []
        for opportunity in opportunities:
            result = await self.execute(opportunity)
            LIQUIDATIONS.labels(result.status.value).inc()
            results.append(result)
        return results

    async def execute(self, opportunity: Opportunity) -> ExecutionResult:
        ctx = {"market": opportunity.market_name, "account": opportunity.account}

        try:
            gas_price = await self.gas_guard.ensure_below_ceiling()
        except GasCeilingExceeded as e:
            log.info("LIQUIDATION_SKIPPED_GAS_TOO_HIGH", gas_price=e.gas_price_wei, ceiling=e.ceiling_wei, **ctx)
            return ExecutionResult(opportunity=opportunity, status=ExecutionStatus.SKIPPED, error=str(e))

        log.info(
            "LIQUIDATION_PREPARING",
            debt_to_cover=opportunity.debt_to_cover,
            debt_token=opportunity.debt_token.symbol,
            estimated_profit_wei=opportunity.estimated_profit,
            **ctx,
        )

        tx_hash = None
        try:
            payload = encode_liquidation_params(
                market=opportunity.market,
                borrower=opportunity.account,
                debt_token=opportunity.debt_token.address,
                collateral_token=opportunity.collateral_token.address,
                debt_amount=opportunity.debt_to_cover,
                profit_receiver=self.profit_receiver,
            )
            tx_params = self.flashloan.build_flashloan_transaction(
                opportunity.debt_token.address, opportunity.debt_to_cover, payload, gas_price, self.gas_limit
            )
            tx_hash = await self.flashloan.initiate_flashloan(tx_params)
            log.info("LIQUIDATION_SUBMITTED", tx_hash=tx_hash, **ctx)

            receipt = await self.tx_manager.wait_for_confirmation(tx_hash, tx_params)
        except OnChainRevertError as e:
            log.error("LIQUIDATION_REVERTED", tx_hash=e.tx_hash, reason=e.reason, **ctx)
            return ExecutionResult(
                opportunity=opportunity, status=ExecutionStatus.REVERTED,
                tx_hash=e.tx_hash, gas_used=e.gas_used, error=e.reason,
            )
        except ConfirmationTimeout as e:
            # Unresolved: it may still land. Not retried this run.
            log.error("LIQUIDATION_UNCONFIRMED", tx_hash=e.tx_hash, timeout=e.timeout, **ctx)
            return ExecutionResult(opportunity=opportunity, status=ExecutionStatus.TIMED_OUT, tx_hash=e.tx_hash, error=str(e))
        except Exception as e:
            log.error("LIQUIDATION_FAILED", tx_hash=tx_hash, error=str(e), exc_info=True, **ctx)
            return ExecutionResult(opportunity=opportunity, status=ExecutionStatus.FAILED, tx_hash=tx_hash, error=str(e))

        gas_used = receipt["gasUsed"]
        log.info("LIQUIDATION_CONFIRMED", tx_hash=tx_hash, gas_used=gas_used, **ctx)
        return ExecutionResult(opportunity=opportunity, status=ExecutionStatus.CONFIRMED, tx_hash=tx_hash, gas_used=gas_used)

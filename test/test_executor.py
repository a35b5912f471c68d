# /test/test_executor.py
# - Sequential flashloan-funded execution of a ranked batch.
# - Outcomes: confirmed, reverted, timed out, failed broadcast, skipped on gas.

from decimal import Decimal

import pytest
from eth_abi import decode
from web3 import Web3

from liquidator.abis import LIQUIDATION_PAYLOAD_TYPES
from liquidator.adapters.mock import MockTransactionManager, MockW3, mock_flashloan_adapter
from liquidator.core.gas_estimator import GasPriceGuard
from liquidator.core.logger import LIQUIDATIONS
from liquidator.core.models import ExecutionStatus, Opportunity
from liquidator.strategies.executor import LiquidationExecutor

from conftest import WETH, DAI, USDC, BORROWER_A, BORROWER_B, BORROWER_C, PROFIT_RECEIVER, ETHER

GWEI = 10**9
MARKET_ADDRESS = "0xB5FE3D9C500eA67E4028dB19e9e8a42DF3A3A5e5"


def opp(account, profit, debt_token=DAI, debt=2000 * ETHER) -> Opportunity:
    return Opportunity(
        market=MARKET_ADDRESS,
        market_name="Morpho-Aave v2 WETH",
        account=account,
        collateral_token=WETH,
        debt_token=debt_token,
        debt_to_cover=debt,
        collateral_to_receive=108 * ETHER // 100,
        estimated_profit=profit,
        health_factor=Decimal("0.95"),
    )


def build(outcomes=None, network_gwei=30, ceiling_gwei=100):
    tx_manager = MockTransactionManager(outcomes=outcomes)
    gas_guard = GasPriceGuard(MockW3(gas_price=network_gwei * GWEI), ceiling_wei=ceiling_gwei * GWEI)
    executor = LiquidationExecutor(
        tx_manager, mock_flashloan_adapter(tx_manager), gas_guard, PROFIT_RECEIVER, gas_limit=3_000_000
    )
    return executor, tx_manager


@pytest.mark.asyncio
async def test_batch_is_executed_in_given_order():
    executor, tx_manager = build()
    batch = [opp(BORROWER_A, 5 * ETHER // 10), opp(BORROWER_B, 3 * ETHER // 10), opp(BORROWER_C, ETHER // 10)]

    results = await executor.execute_batch(batch)

    assert [r.status for r in results] == [ExecutionStatus.CONFIRMED] * 3
    assert [r.opportunity.account for r in results] == [BORROWER_A, BORROWER_B, BORROWER_C]
    assert [tx["nonce"] for tx in tx_manager.sent_transactions] == [0, 1, 2]
    assert all(r.gas_used == 450_000 for r in results)


@pytest.mark.asyncio
async def test_flashloan_transaction_carries_liquidation_payload():
    executor, tx_manager = build()
    flashloan = executor.flashloan
    await executor.execute(opp(BORROWER_A, ETHER, debt_token=USDC, debt=5000 * 10**6))

    tx = tx_manager.sent_transactions[0]
    assert tx["to"] == flashloan.provider_address
    assert tx["gasPrice"] == 33 * GWEI
    assert tx["gas"] == 3_000_000
    assert tx["value"] == 0

    func, args = flashloan.provider_contract.decode_function_input(tx["data"])
    assert func.fn_name == "executeFlashloan"
    assert args["token"] == USDC.address
    assert args["amount"] == 5000 * 10**6

    market, borrower, debt_token, collateral_token, amount, receiver = decode(LIQUIDATION_PAYLOAD_TYPES, args["data"])
    assert market.lower() == MARKET_ADDRESS.lower()
    assert Web3.to_checksum_address(borrower) == Web3.to_checksum_address(BORROWER_A)
    assert Web3.to_checksum_address(debt_token) == USDC.address
    assert Web3.to_checksum_address(collateral_token) == WETH.address
    assert amount == 5000 * 10**6
    assert Web3.to_checksum_address(receiver) == Web3.to_checksum_address(PROFIT_RECEIVER)


@pytest.mark.asyncio
async def test_revert_is_reported_and_next_proceeds():
    executor, tx_manager = build(outcomes=["reverted", "confirmed"])
    results = await executor.execute_batch([opp(BORROWER_A, 2 * ETHER), opp(BORROWER_B, ETHER)])

    reverted, confirmed = results
    assert reverted.status is ExecutionStatus.REVERTED
    assert reverted.error == "LIQUIDATION_NOT_PROFITABLE"
    assert reverted.gas_used == 210_000
    assert reverted.tx_hash == tx_manager.sent_transactions[0]["hash"]
    assert confirmed.status is ExecutionStatus.CONFIRMED
    assert len(tx_manager.sent_transactions) == 2


@pytest.mark.asyncio
async def test_unconfirmed_liquidation_is_not_retried():
    executor, tx_manager = build(outcomes=["timeout"])
    results = await executor.execute_batch([opp(BORROWER_A, ETHER), opp(BORROWER_B, ETHER)])
    assert [r.status for r in results] == [ExecutionStatus.TIMED_OUT, ExecutionStatus.CONFIRMED]
    assert results[0].tx_hash is not None
    assert len(tx_manager.sent_transactions) == 2


@pytest.mark.asyncio
async def test_broadcast_error_is_a_failed_attempt():
    executor, tx_manager = build(outcomes=["broadcast_error"])
    results = await executor.execute_batch([opp(BORROWER_A, ETHER), opp(BORROWER_B, ETHER)])
    assert results[0].status is ExecutionStatus.FAILED
    assert results[0].tx_hash is None
    assert "broadcast" in results[0].error
    assert results[1].status is ExecutionStatus.CONFIRMED


@pytest.mark.asyncio
async def test_high_gas_skips_everything():
    """Network 120 gwei (132 adjusted) over a 100 gwei ceiling -> no transaction is sent."""
    executor, tx_manager = build(network_gwei=120)
    skipped_before = LIQUIDATIONS.labels("skipped")._value.get()

    results = await executor.execute_batch([opp(BORROWER_A, ETHER), opp(BORROWER_B, ETHER)])

    assert [r.status for r in results] == [ExecutionStatus.SKIPPED, ExecutionStatus.SKIPPED]
    assert tx_manager.sent_transactions == []
    assert LIQUIDATIONS.labels("skipped")._value.get() == skipped_before + 2


@pytest.mark.asyncio
async def test_gas_is_rechecked_before_each_liquidation():
    executor, tx_manager = build(network_gwei=30)
    w3 = executor.gas_guard.w3

    first = await executor.execute(opp(BORROWER_A, ETHER))
    w3.eth.set_gas_price(120 * GWEI)
    second = await executor.execute(opp(BORROWER_B, ETHER))

    assert first.status is ExecutionStatus.CONFIRMED
    assert second.status is ExecutionStatus.SKIPPED
    assert len(tx_manager.sent_transactions) == 1

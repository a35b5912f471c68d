# /liquidator/adapters/mock.py
# - Test/mocking implementations of the chain, price, quote and transaction
#   collaborators, so the pipeline can run end to end without a node.

from decimal import Decimal
from typing import Dict, List, Optional

from web3 import AsyncWeb3, Web3

from liquidator.adapters.flashloan import FlashloanAdapter
from liquidator.core.errors import OnChainRevertError, ConfirmationTimeout, DataSourceError
from liquidator.core.logger import get_logger
from liquidator.core.models import Market, PriceTable

log = get_logger(__name__)


class MockEth:
    """Just enough of ``w3.eth`` for the gas guard and nonce manager."""
    def __init__(self, gas_price: int = 30 * 10**9, transaction_count: int = 0):
        self._gas_price = gas_price
        self.transaction_count = transaction_count
        self.fail_gas_price = False

    def set_gas_price(self, gas_price: int):
        self._gas_price = gas_price

    async def _gas_price_coro(self) -> int:
        if self.fail_gas_price:
            raise ConnectionError("gas price RPC unavailable")
        return self._gas_price

    @property
    def gas_price(self):
        return self._gas_price_coro()

    async def get_transaction_count(self, address, block_identifier="latest") -> int:
        return self.transaction_count


class MockW3:
    def __init__(self, **kwargs):
        self.eth = MockEth(**kwargs)


class MockRpcContext:
    """
    Stands in for RpcContext. Contract objects are real (ABI encoding works
    offline); nothing is ever sent to the dummy endpoint.
    """
    def __init__(self, address: str = "0x00000000000000000000000000000000000000Aa", block_number: int = 19_000_000):
        self.address = Web3.to_checksum_address(address)
        self.chain_id = 1
        self.current_block = block_number
        self.fail_block_number = False
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider("http://127.0.0.1:8545"))

    async def block_number(self) -> int:
        if self.fail_block_number:
            raise ConnectionError("node unreachable")
        return self.current_block

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)


class MockTransactionManager:
    """
    Records broadcasts and resolves confirmations from a scripted list of
    outcomes: "confirmed", "reverted", "timeout" or "broadcast_error".
    """
    def __init__(self, from_address: str = "0x00000000000000000000000000000000000000Aa", outcomes: Optional[List[str]] = None):
        self.address = from_address
        self.nonce = 0
        self.nonce_syncs = 0
        self.sent_transactions: List[Dict] = []
        self.outcomes = list(outcomes or [])
        self._pending: Dict[str, str] = {}
        log.info("MOCK_TRANSACTION_MANAGER_INITIALIZED", address=self.address)

    async def sync_nonce(self) -> int:
        self.nonce_syncs += 1
        return self.nonce

    async def build_and_send_transaction(self, tx_params: Dict) -> str:
        outcome = self.outcomes.pop(0) if self.outcomes else "confirmed"
        if outcome == "broadcast_error":
            raise ConnectionError("Forced broadcast failure for testing.")
        tx_hash = "0x" + f"{self.nonce:064x}"
        self.sent_transactions.append({"hash": tx_hash, "nonce": self.nonce, **tx_params})
        self._pending[tx_hash] = outcome
        self.nonce += 1
        log.info("MOCK_TRANSACTION_SENT", tx_hash=tx_hash)
        return tx_hash

    async def wait_for_confirmation(self, tx_hash: str, tx_params: Optional[Dict] = None) -> Dict:
        outcome = self._pending.pop(tx_hash)
        if outcome == "reverted":
            raise OnChainRevertError(tx_hash, "LIQUIDATION_NOT_PROFITABLE", 210_000)
        if outcome == "timeout":
            raise ConfirmationTimeout(tx_hash, 300)
        return {"transactionHash": tx_hash, "status": 1, "gasUsed": 450_000, "blockNumber": 19_000_001}


class MockPriceClient:
    def __init__(self, prices: Dict[str, Decimal], native_price: Decimal, is_fallback: bool = False):
        self.table = PriceTable(prices=prices, native_price=native_price, is_fallback=is_fallback)
        self.calls = 0

    async def get_token_prices(self) -> PriceTable:
        self.calls += 1
        return self.table

    async def close(self):
        pass


class MockSwapQuoteClient:
    """Quotes keyed by "FROM-TO" (lowercase). ``unavailable`` simulates an outage."""
    def __init__(self, quotes: Optional[Dict[str, int]] = None, unavailable: bool = False, raises: bool = False):
        self.quotes = {k.lower(): v for k, v in (quotes or {}).items()}
        self.unavailable = unavailable
        self.raises = raises
        self.requests: List[tuple] = []

    async def estimate_swap_output(self, from_token: str, to_token: str, amount: int) -> Optional[int]:
        self.requests.append((from_token, to_token, amount))
        if self.raises:
            raise DataSourceError("quote service unreachable")
        if self.unavailable:
            return None
        return self.quotes.get(f"{from_token}-{to_token}".lower())

    async def close(self):
        pass


class MockProtocol:
    """Health factors and liquidatable flags per (market, account)."""
    def __init__(self, health_factors: Dict[str, Decimal], liquidatable: Optional[Dict[str, bool]] = None, failing_markets=(),
                 failing_accounts=()):
        self.health_factors = {k.lower(): v for k, v in health_factors.items()}
        self.liquidatable = {k.lower(): v for k, v in (liquidatable or {}).items()}
        self.failing_markets = {m.lower() for m in failing_markets}
        self.failing_accounts = {a.lower() for a in failing_accounts}
        self.reads: List[tuple] = []

    async def health_factor(self, market: Market, borrower: str, block_number: Optional[int] = None) -> Decimal:
        self.reads.append((market.address, borrower, block_number))
        if market.address.lower() in self.failing_markets:
            raise DataSourceError(f"RPC failure reading {market.name}")
        if borrower.lower() in self.failing_accounts:
            raise ConnectionError(f"RPC failure reading {borrower}")
        return self.health_factors.get(borrower.lower(), Decimal("2"))

    async def is_liquidatable(self, market: Market, borrower: str, block_number: Optional[int] = None) -> bool:
        return self.liquidatable.get(borrower.lower(), True)


def mock_flashloan_adapter(tx_manager: MockTransactionManager, ctx: Optional[MockRpcContext] = None):
    """A real FlashloanAdapter bound to mock collaborators."""
    return FlashloanAdapter(ctx or MockRpcContext(), tx_manager, "0x000000000000000000000000000000000000F1a5")

# /liquidator/core/errors.py
# Failure taxonomy shared by every component. Expected outcomes such as
# "position is healthy" or "quote unavailable" are return values, not errors.


class LiquidatorError(Exception):
    pass


class ConfigurationError(LiquidatorError):
    """Missing or invalid required setting. Fatal at startup."""


class DataSourceError(LiquidatorError):
    """RPC, price or quote source unavailable. Always recovered locally."""


class GasCeilingExceeded(LiquidatorError):
    def __init__(self, gas_price_wei: int, ceiling_wei: int):
        self.gas_price_wei = gas_price_wei
        self.ceiling_wei = ceiling_wei
        super().__init__(f"Gas price {gas_price_wei} wei exceeds ceiling {ceiling_wei} wei")


class TransactionSubmissionError(LiquidatorError):
    """The transaction could not be signed or broadcast."""


class OnChainRevertError(LiquidatorError):
    def __init__(self, tx_hash: str, reason: str | None = None, gas_used: int | None = None):
        self.tx_hash = tx_hash
        self.reason = reason
        self.gas_used = gas_used
        super().__init__(f"Transaction {tx_hash} reverted: {reason or 'unknown reason'}")


class ConfirmationTimeout(LiquidatorError):
    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout}s")

# /liquidator/core/config_validator.py
# Run at startup: every required setting must be present before anything connects.
from web3 import Web3

from liquidator.core.config import Settings, settings as default_settings
from liquidator.core.errors import ConfigurationError
from liquidator.core.logger import get_logger

log = get_logger(__name__)

REQUIRED_VARS = [
    'ETHEREUM_RPC_URL',
    'PRIVATE_KEY',
    'MORPHO_CONTRACT_ADDRESS',
    'AAVE_LENDING_POOL_ADDRESS',
    'PROFIT_RECEIVER_ADDRESS',
]
ADDRESS_VARS = ['MORPHO_CONTRACT_ADDRESS', 'AAVE_LENDING_POOL_ADDRESS', 'PROFIT_RECEIVER_ADDRESS']


def validate(settings: Settings = default_settings):
    log.info("CONFIG_VALIDATION_START")
    errors = []

    for var in REQUIRED_VARS:
        value = getattr(settings, var, None)
        if value is not None and hasattr(value, "get_secret_value"):
            value = value.get_secret_value()
        if not value:
            errors.append(f"Missing required configuration: {var}")

    for var in ADDRESS_VARS:
        value = getattr(settings, var, None)
        if value and not Web3.is_address(value):
            errors.append(f"Invalid address for {var}: {value}")

    if settings.MAX_GAS_PRICE <= 0:
        errors.append("MAX_GAS_PRICE must be positive")
    if settings.GAS_PRICE_MULTIPLIER < 1:
        errors.append("GAS_PRICE_MULTIPLIER must be at least 1")

    if errors:
        for error in errors:
            log.critical("CONFIG_INVALID", error=error)
        raise ConfigurationError("; ".join(errors))

    log.info("CONFIG_VALIDATION_PASSED")


if __name__ == "__main__":
    validate()

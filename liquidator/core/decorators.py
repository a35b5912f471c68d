# /liquidator/core/decorators.py
# Reusable decorators for operational resilience.
from tenacity import retry, stop_after_attempt, wait_exponential, before_sleep_log
import logging

# tenacity's before_sleep_log wants a stdlib logger.
_retry_log = logging.getLogger("liquidator.retry")

# Retry decorator for RPC reads and HTTP calls. Write calls are never retried:
# a second broadcast would reuse or skip a nonce.
retriable_network_call = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    before_sleep=before_sleep_log(_retry_log, logging.WARNING),
    reraise=True  # Re-raise the last exception after retries are exhausted
)

# /liquidator/core/logger.py
import logging
import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars
import sentry_sdk
from prometheus_client import Counter

from liquidator.core.config import settings

# --- Prometheus Metrics ---
RUNS_STARTED = Counter("liquidator_runs_started_total", "Pipeline runs started")
RUNS_SKIPPED = Counter("liquidator_runs_skipped_total", "Scheduler ticks dropped because a run was in progress")
OPPORTUNITIES_FOUND = Counter("liquidator_opportunities_found_total", "Profitable liquidation opportunities evaluated")
LIQUIDATIONS = Counter("liquidator_liquidations_total", "Liquidation attempts by outcome", ["status"])
ERRORS_LOGGED = Counter("liquidator_errors_logged_total", "Total number of errors logged", ["level"])


def count_errors(logger, method_name: str, event_dict: dict) -> dict:
    """Structlog processor that counts error and critical events."""
    if method_name in ("error", "critical", "exception"):
        ERRORS_LOGGED.labels(method_name).inc()
    return event_dict


def _resolve_level() -> int:
    if settings.DEBUG:
        return logging.DEBUG
    return logging.getLevelName(settings.LOG_LEVEL)


def configure_logging():
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN.get_secret_value(), traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            count_errors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)


def bind_run(run_id: int):
    clear_contextvars()
    bind_contextvars(run_id=run_id)


configure_logging()

"""Process-wide logging and tracing setup for the CLI and the HTTP app."""

from promptbench.common.config import Settings
from promptbench.common.logging import configure_logging, get_logger

logger = get_logger(__name__)

_LOGFIRE_INITIALIZED = False


def is_logfire_enabled() -> bool:
    return _LOGFIRE_INITIALIZED


def init_observability(settings: Settings) -> bool:
    """Point JSON logs at the configured file, then try to start Logfire.

    Returns whether Logfire tracing is active.
    """
    configure_logging(settings.log_path, settings.logging.level)
    return init_logfire(settings)


def init_logfire(settings: Settings) -> bool:
    """Start Logfire tracing and httpx instrumentation when a token is set.

    Safe to call repeatedly; only the first successful call configures
    Logfire. A rejected token is logged and leaves tracing off.
    """
    global _LOGFIRE_INITIALIZED

    if _LOGFIRE_INITIALIZED:
        return True
    cfg = settings.logfire
    if not cfg.is_enabled:
        return False

    import logfire

    try:
        logfire.configure(
            token=cfg.token,
            service_name=cfg.service_name,
            environment=cfg.environment,
        )
        logfire.instrument_httpx()
    except Exception as e:
        logger.error("Logfire setup failed, tracing disabled", {"error": str(e)})
        return False

    _LOGFIRE_INITIALIZED = True
    logger.info("Tracing to Logfire", {"service": cfg.service_name, "env": cfg.environment})
    return True

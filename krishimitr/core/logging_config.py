"""
Logging configuration for the Krishi Mitr core.

- Structured JSON logging for production
- Console rendering for local development
- Environment-aware log levels
"""

import logging
import os

import structlog


def configure_structlog() -> None:
    """
    Configure structlog for production use.
    Uses the stdlib integration pattern so logger.info("event", key=val) works everywhere.
    """
    env = os.getenv("ENVIRONMENT", "development")

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]


def get_log_level() -> str:
    """
    Get log level from environment with sensible defaults.

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    env = os.getenv("ENVIRONMENT", "development")
    log_level = os.getenv("LOG_LEVEL", "").upper()

    if log_level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        return log_level

    defaults = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }

    return defaults.get(env, "INFO")


def configure_logging() -> None:
    """
    Initialize logging configuration for the application.

    Call once at startup, before the first SessionStore is built.
    """
    configure_structlog()

    logging.getLogger().setLevel(get_log_level())

    # Suppress noisy third-party loggers
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("account_registered", user_id=user_id)
    """
    return structlog.get_logger(name)

"""Logging configuration for nommatch.

The CLI renders coloured console lines. When the engine runs inside a host
service, set NOMMATCH_LOG_FORMAT=json so every event (predict_done,
strategy_dropped and so on) is emitted as one JSON object per line for a
log aggregator to index.
"""

import logging
import os

import structlog


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog for the engine and the CLI.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). If None, reads from
               LOG_LEVEL env var, defaulting to INFO.
        fmt: "console" (coloured, for the CLI) or "json" (for host services
             that ship logs). If None, reads NOMMATCH_LOG_FORMAT, defaulting
             to console.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, log_level, logging.INFO)
    log_format = (fmt or os.environ.get("NOMMATCH_LOG_FORMAT", "console")).lower()

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

"""
Log setup for the spendlog service.

Every record, whether emitted through `structlog.get_logger()` in the intake
and service modules or `logging.getLogger()` in the bot and API layers, goes
through one stderr handler. Dev mode renders key=value lines for a terminal;
otherwise each record is one JSON object for the log collector.

    from spendlog.lib.logging import setup_logging
    setup_logging()
"""

import logging
import os
import sys

import structlog

# Loggers that echo request URLs (bot token, API key) when left at DEBUG.
QUIET_LOGGERS = ("httpx", "httpcore", "telegram", "urllib3")


def _renderer(dev_mode: bool) -> structlog.types.Processor:
    if dev_mode:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(dev_mode: bool | None = None, log_level: str | None = None) -> None:
    """
    Route structlog and stdlib records to stderr with a shared format.

    Args:
        dev_mode: Console rendering; falls back to SPENDLOG_DEV_MODE=1
        log_level: Root level name; falls back to LOG_LEVEL, then INFO
    """
    if dev_mode is None:
        dev_mode = os.environ.get("SPENDLOG_DEV_MODE") == "1"
    level_name = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(dev_mode),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(stream)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

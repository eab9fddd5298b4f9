"""structlog configuration shared by the pipeline and backtest entry points.

Candle and fill events carry market time (candle starts, thresholds)
next to the wall-clock ``timestamp`` added here. Market datetimes are
rendered as ISO strings so both renderers print them the same way.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import IO

import structlog

# third-party loggers that are noisy at DEBUG during a replay
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _render_datetimes(_logger, _method_name, event_dict):
    for key, value in event_dict.items():
        if isinstance(value, datetime):
            event_dict[key] = value.isoformat()
    return event_dict


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: IO[str] | None = None,
) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for one object per line, "console" for a
            human-readable one.
        stream: Where to write; stderr by default.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _render_datetimes,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context) -> structlog.stdlib.BoundLogger:
    """Return a named structlog logger, optionally pre-bound with context."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def bind_market(exchange: str, asset: str, currency: str):
    """Context manager tagging every event inside it with its market."""
    return structlog.contextvars.bound_contextvars(
        exchange=exchange,
        market=f"{asset}/{currency}",
    )

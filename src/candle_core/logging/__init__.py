"""Structured logging."""

from candle_core.logging.setup import bind_market, get_logger, setup_logging

__all__ = ["bind_market", "get_logger", "setup_logging"]

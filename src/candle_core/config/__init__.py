"""Configuration system."""

from candle_core.config.loader import load_config
from candle_core.config.schema import AppConfig

__all__ = ["AppConfig", "load_config"]

"""Config loader — reads YAML, applies CANDLE_* env var overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from candle_core.config.schema import AppConfig

# env var -> (section, key, cast)
_ENV_OVERRIDES = {
    "CANDLE_DATABASE_URL": ("database", "url", str),
    "CANDLE_LOG_LEVEL": ("logging", "level", str),
    "CANDLE_LOG_FORMAT": ("logging", "format", str),
    "CANDLE_VERSION": ("candles", "version", int),
    "CANDLE_SIZE": ("candles", "candle_size", int),
}


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, returns defaults.

    Environment variable overrides:
        CANDLE_DATABASE_URL  -> database.url
        CANDLE_LOG_LEVEL     -> logging.level
        CANDLE_LOG_FORMAT    -> logging.format
        CANDLE_VERSION       -> candles.version
        CANDLE_SIZE          -> candles.candle_size
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    for env_name, (section, key, cast) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data.setdefault(section, {})[key] = cast(value)

    return AppConfig.model_validate(data)

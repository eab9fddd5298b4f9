"""Pydantic domain models."""

from candle_core.models.candle import (
    CANDLE_ADAPTER,
    Candle,
    CandleV1,
    CandleV2,
    parse_candle,
)
from candle_core.models.order import Balances, FilledTrade, Order
from candle_core.models.trade import Trade, TradeBatch

__all__ = [
    "Balances",
    "CANDLE_ADAPTER",
    "Candle",
    "CandleV1",
    "CandleV2",
    "FilledTrade",
    "Order",
    "Trade",
    "TradeBatch",
    "parse_candle",
]

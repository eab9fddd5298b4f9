"""Candle construction — trades to contiguous one-minute candles and
N-minute aggregates."""

from candle_core.candles.batcher import CandleAggregator, merge_candles
from candle_core.candles.builder import CandleBuilder, calculate_candle
from candle_core.candles.classify import ClassifierState, classify_bucket, classify_trade
from candle_core.candles.gaps import fill_gaps
from candle_core.candles.pipeline import CandlePipeline, CandleSink
from candle_core.candles.store import CandleStore

__all__ = [
    "CandleAggregator",
    "CandleBuilder",
    "CandlePipeline",
    "CandleSink",
    "CandleStore",
    "ClassifierState",
    "calculate_candle",
    "classify_bucket",
    "classify_trade",
    "fill_gaps",
    "merge_candles",
]

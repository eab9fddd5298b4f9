"""Backtest exchange — simulated order matching against candle ranges."""

from candle_core.backtest.engine import MatchingEngine, calculate_fee
from candle_core.backtest.ledger import PortfolioLedger
from candle_core.backtest.reader import CandleReader
from candle_core.backtest.runner import BacktestResult, build_engine, run_backtest

__all__ = [
    "BacktestResult",
    "CandleReader",
    "MatchingEngine",
    "PortfolioLedger",
    "build_engine",
    "calculate_fee",
    "run_backtest",
]

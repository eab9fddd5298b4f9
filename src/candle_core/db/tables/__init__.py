"""Import all table modules so Base.metadata knows about them."""

from candle_core.db.tables.candles import CandleRow

__all__ = ["CandleRow"]
